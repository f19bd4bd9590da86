"""Opening-related MCP tools for the game review server.

Registers 1 tool on the provided FastMCP instance:
  - identify_opening

Called from server.py via register_openings_tools().
"""

from __future__ import annotations

from pathlib import Path

import chess


def register_openings_tools(mcp, data_dir: Path, project_root: Path):
    """Register all opening-related MCP tools on the FastMCP instance.

    Args:
        mcp: FastMCP server instance.
        data_dir: Path to data/ directory.
        project_root: Path to project root for imports.
    """
    # Lazy import to avoid circular deps at module level
    import sys
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))
    from game_review.openings import OpeningsDB

    openings_path = data_dir / "openings.json"

    @mcp.tool()
    def identify_opening(fen: str) -> dict:
        """Name the opening a position belongs to.

        Args:
            fen: FEN string of the position.

        Returns:
            Dict with fen and opening (None if out of book), or an
            error dict for an invalid FEN.
        """
        try:
            board = chess.Board(fen)
        except ValueError as exc:
            return {"error": f"Invalid FEN: {exc}"}

        openings_db = OpeningsDB(path=str(openings_path))
        return {"fen": board.fen(), "opening": openings_db.identify(board.fen())}

    return identify_opening
