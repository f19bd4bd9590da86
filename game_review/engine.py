"""Stockfish evaluation collaborator for game review.

Wraps Stockfish via python-chess UCI interface. Provides:
- MultiPV analysis of a single position as ranked engine lines
- Batch evaluation of a parsed game before review
- CLI for quick position analysis
Evaluations are reported from White's point of view.
"""

from __future__ import annotations

import argparse
import os
import shutil
import sys
from pathlib import Path

import chess
import chess.engine
from rich.console import Console
from rich.table import Table

from game_review.models import CENTIPAWN, MATE, EngineLine, Evaluation, Position

# Stockfish search paths in priority order
_STOCKFISH_PATHS = [
    "/opt/homebrew/bin/stockfish",
    "/usr/local/bin/stockfish",
    "/usr/games/stockfish",
    "/usr/bin/stockfish",
]

DEFAULT_DEPTH = 16
DEFAULT_MULTIPV = 2


def _find_stockfish() -> str:
    """Locate the Stockfish binary.

    Honors STOCKFISH_PATH, then checks known install paths, then falls
    back to PATH lookup.

    Returns:
        Filesystem path of the binary.

    Raises:
        FileNotFoundError: If no candidate exists.
    """
    env_path = os.environ.get("STOCKFISH_PATH")
    if env_path and Path(env_path).is_file():
        return env_path

    for path_str in _STOCKFISH_PATHS:
        if Path(path_str).is_file():
            return path_str

    which_result = shutil.which("stockfish")
    if which_result is not None:
        return which_result

    raise FileNotFoundError(
        "Stockfish not found. Install it or set STOCKFISH_PATH."
    )


def _line_from_info(rank: int, info: dict, depth: int) -> EngineLine | None:
    """Convert one python-chess analysis info dict to an EngineLine."""
    pv = info.get("pv") or []
    if not pv:
        return None

    score = info["score"].white()
    mate = score.mate()
    if mate is not None:
        evaluation = Evaluation(MATE, mate)
    else:
        evaluation = Evaluation(CENTIPAWN, score.score())

    return EngineLine(
        id=rank,
        depth=info.get("depth", depth),
        evaluation=evaluation,
        move_uci=pv[0].uci(),
    )


class ChessEngine:
    """Stockfish wrapper producing review-ready engine lines."""

    def __init__(self, stockfish_path: str | None = None) -> None:
        """Start a Stockfish process.

        Args:
            stockfish_path: Binary to run. Located with
                _find_stockfish() when omitted.

        Raises:
            FileNotFoundError: If Stockfish is not found.
        """
        self._stockfish_path = stockfish_path or _find_stockfish()
        self._engine = self._open_engine()

    def _open_engine(self) -> chess.engine.SimpleEngine:
        """Spawn a UCI process for the configured binary."""
        return chess.engine.SimpleEngine.popen_uci(self._stockfish_path)

    def _ensure_engine(self) -> None:
        """Ensure engine process is alive, restart once if terminated."""
        try:
            self._engine.ping()
        except chess.engine.EngineTerminatedError:
            self._engine = self._open_engine()

    def analyze_position(
        self,
        board: chess.Board,
        depth: int = DEFAULT_DEPTH,
        multipv: int = DEFAULT_MULTIPV,
    ) -> list[EngineLine]:
        """Full-strength MultiPV analysis of one position.

        Args:
            board: Position to analyze.
            depth: Analysis depth.
            multipv: Number of principal variations.

        Returns:
            Engine lines ranked from 1 (best). Empty when the game is
            over in this position.
        """
        if board.is_game_over():
            return []

        self._ensure_engine()

        try:
            return self._analyze_position_inner(board, depth, multipv)
        except chess.engine.EngineTerminatedError:
            self._engine = self._open_engine()
            return self._analyze_position_inner(board, depth, multipv)

    def _analyze_position_inner(
        self,
        board: chess.Board,
        depth: int,
        multipv: int,
    ) -> list[EngineLine]:
        """Internal analysis without crash recovery."""
        infos = self._engine.analyse(
            board,
            chess.engine.Limit(depth=depth),
            multipv=multipv,
        )

        lines: list[EngineLine] = []
        for rank, info in enumerate(infos, 1):
            line = _line_from_info(rank, info, depth)
            if line is not None:
                lines.append(line)
        return lines

    def evaluate_positions(
        self,
        positions: list[Position],
        depth: int = DEFAULT_DEPTH,
        multipv: int = DEFAULT_MULTIPV,
    ) -> list[Position]:
        """Fill every position's engine lines in place.

        Args:
            positions: Parsed game positions.
            depth: Analysis depth per position.
            multipv: Lines per position; at least 2 so that only
                genuinely forced moves look forced.

        Returns:
            The same list, for chaining.
        """
        for position in positions:
            board = chess.Board(position.fen)
            position.top_lines = self.analyze_position(board, depth=depth, multipv=multipv)
            position.worker = "local"
        return positions

    def close(self) -> None:
        """Quit the Stockfish process, ignoring one that already died."""
        try:
            self._engine.quit()
        except chess.engine.EngineTerminatedError:
            pass


# ---------------------------------------------------------------------------
# CLI interface
# ---------------------------------------------------------------------------


def _format_evaluation(evaluation: Evaluation) -> str:
    if evaluation.is_mate:
        return f"#{evaluation.value}"
    return f"{evaluation.value / 100.0:+.2f}"


def _cli_analyze(fen: str, depth: int, multipv: int, console: Console) -> None:
    """Print the engine's ranked lines for one FEN."""
    board = chess.Board(fen)
    engine = ChessEngine()
    try:
        lines = engine.analyze_position(board, depth=depth, multipv=multipv)
    finally:
        engine.close()

    table = Table(title=f"{'White' if board.turn else 'Black'} to move, depth {depth}")
    table.add_column("Line", justify="right")
    table.add_column("Move")
    table.add_column("Eval (White)", justify="right")
    for line in lines:
        table.add_row(
            str(line.id),
            board.san(chess.Move.from_uci(line.move_uci)),
            _format_evaluation(line.evaluation),
        )
    console.print(fen)
    console.print(table)


def main() -> None:
    """Run ``analyze FEN [--depth N] [--multipv N]``."""
    parser = argparse.ArgumentParser(description="Stockfish lines for game review")
    subparsers = parser.add_subparsers(dest="command")

    analyze = subparsers.add_parser("analyze", help="Show the top engine lines for a FEN")
    analyze.add_argument("fen", help="Position to analyse")
    analyze.add_argument("--depth", type=int, default=DEFAULT_DEPTH)
    analyze.add_argument("--multipv", type=int, default=DEFAULT_MULTIPV)

    args = parser.parse_args()
    if args.command != "analyze":
        parser.print_help()
        sys.exit(1)
    _cli_analyze(args.fen, args.depth, args.multipv, Console())


if __name__ == "__main__":
    main()
