"""Shared test fixtures with dual-mode support (mocked vs real Stockfish).

Usage:
    pytest tests/                  # Fast, mocked engine (no Stockfish)
    pytest tests/ --e2e            # Real Stockfish for integration tests

Fixtures:
    mock_chess_engine  - Patches ChessEngine with a mock that fills
                         engine lines from legal moves.
                         Skipped when --e2e is passed.
    no_openings        - Empty OpeningsDB so book detection stays out
                         of classification tests.
    enable_validation  - Sets GAME_REVIEW_VALIDATE=1 for schema validation.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import chess
import pytest

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_PROJECT_ROOT))

from game_review.models import EngineLine, Evaluation, Move, Position  # noqa: E402
from game_review.openings import OpeningsDB  # noqa: E402


# ---------------------------------------------------------------------------
# CLI option and marker registration
# ---------------------------------------------------------------------------


def pytest_addoption(parser):
    """Register --e2e CLI flag for real Stockfish tests."""
    parser.addoption(
        "--e2e",
        action="store_true",
        default=False,
        help="Run with real Stockfish engine (no mocks).",
    )


def pytest_configure(config):
    """Register the e2e marker."""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires real Stockfish)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip e2e tests unless --e2e is passed."""
    if config.getoption("--e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="needs --e2e and a Stockfish binary")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


# ---------------------------------------------------------------------------
# Mock chess engine fixture
# ---------------------------------------------------------------------------


def make_mock_engine():
    """Create a mock ChessEngine that evaluates positions deterministically."""
    mock = MagicMock()

    def _analyze_position(board: chess.Board, depth: int = 16, multipv: int = 2):
        """Rank the first legal moves, best first, White's point of view."""
        if board.is_game_over():
            return []
        sign = 1 if board.turn == chess.WHITE else -1
        lines = []
        for i, move in enumerate(list(board.legal_moves)[:multipv], 1):
            lines.append(EngineLine(
                id=i,
                depth=depth,
                evaluation=Evaluation("cp", sign * (30 - (i - 1) * 20)),
                move_uci=move.uci(),
            ))
        return lines

    def _evaluate_positions(positions, depth: int = 16, multipv: int = 2):
        for position in positions:
            position.top_lines = _analyze_position(
                chess.Board(position.fen), depth=depth, multipv=multipv
            )
            position.worker = "local"
        return positions

    mock.analyze_position = _analyze_position
    mock.evaluate_positions = _evaluate_positions
    mock.close = MagicMock()

    return mock


@pytest.fixture()
def mock_chess_engine(request):
    """Patch ChessEngine with a mock that returns valid engine lines.

    Skipped when --e2e flag is passed (uses real Stockfish instead).
    """
    if request.config.getoption("--e2e"):
        yield None
        return

    with patch("game_review.engine.ChessEngine", side_effect=lambda: make_mock_engine()), \
         patch("game_review.analysis.ChessEngine", side_effect=lambda: make_mock_engine()):
        yield


# ---------------------------------------------------------------------------
# Position helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def no_openings():
    """An empty openings database."""
    return OpeningsDB(openings=[])


def line(line_id: int, uci: str, value: int, eval_type: str = "cp") -> EngineLine:
    """Build an engine line with a White-POV evaluation."""
    return EngineLine(
        id=line_id,
        depth=18,
        evaluation=Evaluation(eval_type, value),
        move_uci=uci,
    )


def build_game(moves: list[str], lines: list[list[EngineLine]], start_fen: str | None = None):
    """Build a position list by playing UCI moves from a start position.

    Args:
        moves: UCI moves to play.
        lines: Engine lines for each resulting position, including the
            start position (len(moves) + 1 entries).
        start_fen: Optional starting FEN.

    Returns:
        List of Position objects.
    """
    assert len(lines) == len(moves) + 1
    board = chess.Board(start_fen) if start_fen else chess.Board()
    positions = [Position(fen=board.fen(), top_lines=list(lines[0]))]
    for uci, position_lines in zip(moves, lines[1:]):
        move = chess.Move.from_uci(uci)
        assert move in board.legal_moves, f"{uci} not legal in {board.fen()}"
        san = board.san(move)
        board.push(move)
        positions.append(Position(
            fen=board.fen(),
            move=Move(san=san, uci=uci),
            top_lines=list(position_lines),
        ))
    return positions


# ---------------------------------------------------------------------------
# Schema validation fixture
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def enable_validation():
    """Set GAME_REVIEW_VALIDATE=1 for the test session.

    Restores the original env var value after the test.
    """
    original = os.environ.get("GAME_REVIEW_VALIDATE")
    os.environ["GAME_REVIEW_VALIDATE"] = "1"
    yield
    if original is None:
        os.environ.pop("GAME_REVIEW_VALIDATE", None)
    else:
        os.environ["GAME_REVIEW_VALIDATE"] = original
