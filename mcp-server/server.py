"""MCP server for game review.

Exposes game parsing, Stockfish evaluation and move classification
via FastMCP. Every tool is stateless: positions travel in the request
and the annotated report comes back in the response.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Add project root and mcp-server dir to path for imports
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_MCP_SERVER_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(_PROJECT_ROOT))
sys.path.insert(0, str(_MCP_SERVER_DIR))

from mcp.server.fastmcp import FastMCP

from game_review.analysis import analyse_positions
from game_review.engine import DEFAULT_DEPTH, DEFAULT_MULTIPV, ChessEngine
from game_review.models import positions_from_dicts
from game_review.openings import OpeningsDB
from game_review.parsing import GameParseError, parse_game_input

from openings_tools import register_openings_tools  # noqa: E402
from response_schemas import minify_positions, minify_report  # noqa: E402

logger = logging.getLogger(__name__)

mcp = FastMCP("game-review")

_DATA_DIR = _PROJECT_ROOT / "data"

identify_opening = register_openings_tools(mcp, _DATA_DIR, _PROJECT_ROOT)


def _load_positions(positions: list[dict]):
    """Build Position objects from tool input.

    Returns:
        Tuple of (positions, error message or None).
    """
    if not isinstance(positions, list) or not positions:
        return None, "Missing parameters."
    try:
        return positions_from_dicts(positions), None
    except (KeyError, TypeError, ValueError) as exc:
        return None, f"Invalid positions: {exc}"


def _report(positions, full: bool) -> dict:
    report = analyse_positions(positions, OpeningsDB(path=str(_DATA_DIR / "openings.json")))
    report_dict = report.to_dict()
    if full:
        return report_dict
    return minify_report(report_dict)


# ---------------------------------------------------------------------------
# Review tools
# ---------------------------------------------------------------------------


@mcp.tool()
def parse_game(input: str) -> dict:
    """Parse a PGN, FEN or SAN move list into a position list.

    Args:
        input: Game text.

    Returns:
        Dict with positions (fen + move) and count, or error.
    """
    try:
        positions = parse_game_input(input)
    except GameParseError as exc:
        return {"error": str(exc)}
    return minify_positions([p.to_dict() for p in positions])


@mcp.tool()
def evaluate_game(
    positions: list[dict],
    depth: int = DEFAULT_DEPTH,
    multipv: int = DEFAULT_MULTIPV,
) -> dict:
    """Fill engine lines for every position with Stockfish.

    Creates a temporary engine for the evaluation.

    Args:
        positions: Position list as returned by parse_game.
        depth: Analysis depth per position (default 16).
        multipv: Lines per position (default 2).

    Returns:
        Dict with the evaluated positions and count, or error.
    """
    loaded, error = _load_positions(positions)
    if error is not None:
        return {"error": error}

    try:
        engine = ChessEngine()
    except FileNotFoundError as exc:
        return {"error": str(exc)}

    try:
        engine.evaluate_positions(loaded, depth=depth, multipv=multipv)
    except ValueError as exc:
        return {"error": f"Invalid FEN: {exc}"}
    finally:
        engine.close()

    return minify_positions([p.to_dict() for p in loaded])


@mcp.tool()
def generate_report(positions: list[dict], full: bool = False) -> dict:
    """Classify every move of an evaluated game and compute accuracy.

    Args:
        positions: Evaluated positions (each with topLines).
        full: Return every position with engine lines instead of the
            compact move summary.

    Returns:
        Report dict with accuracies and moves, or error.
    """
    loaded, error = _load_positions(positions)
    if error is not None:
        return {"error": error}

    try:
        return _report(loaded, full)
    except ValueError as exc:
        logger.exception("Report generation failed")
        return {"error": f"Failed to generate report: {exc}"}


@mcp.tool()
def review_game(
    input: str,
    depth: int = DEFAULT_DEPTH,
    multipv: int = DEFAULT_MULTIPV,
) -> dict:
    """Parse, evaluate and review a game in one call.

    Args:
        input: PGN, FEN or SAN move list.
        depth: Analysis depth per position (default 16).
        multipv: Lines per position (default 2).

    Returns:
        Minified report dict, or error.
    """
    try:
        positions = parse_game_input(input)
    except GameParseError as exc:
        return {"error": str(exc)}

    try:
        engine = ChessEngine()
    except FileNotFoundError as exc:
        return {"error": str(exc)}

    try:
        engine.evaluate_positions(positions, depth=depth, multipv=multipv)
    finally:
        engine.close()

    return _report(positions, full=False)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    mcp.run()
