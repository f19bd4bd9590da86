"""Turn raw game input into an unevaluated position list.

Accepts a FEN, a PGN (with or without headers) or a bare list of SAN
moves. The first position never has a move.
"""

from __future__ import annotations

import io
import re

import chess
import chess.pgn

from game_review.models import Move, Position

_FEN_PATTERN = re.compile(r"^(?:[rnbqkpRNBQKP1-8]+/){7}[rnbqkpRNBQKP1-8]+")
_MOVE_NUMBER = re.compile(r"\d+\.(?:\.\.)?\s*")
_RESULT = re.compile(r"1-0|0-1|1/2-1/2|\*")


class GameParseError(ValueError):
    """Raised when game input cannot be turned into positions."""


def detect_input_type(text: str) -> str:
    """Classify game input as "fen", "pgn" or "moves"."""
    trimmed = text.strip()

    if _FEN_PATTERN.match(trimmed):
        return "fen"
    if any(tag in trimmed for tag in ("[Event ", "[White ", "[Black ")):
        return "pgn"
    if re.search(r"\d+\.", trimmed):
        return "pgn"
    return "moves"


def _parse_fen(text: str) -> list[Position]:
    fen = text.strip().splitlines()[0].strip()
    try:
        board = chess.Board(fen)
    except ValueError as exc:
        raise GameParseError("Invalid FEN position.") from exc
    return [Position(fen=board.fen())]


def _parse_pgn(text: str) -> list[Position]:
    game = chess.pgn.read_game(io.StringIO(text))
    if game is None or game.errors:
        raise GameParseError("Failed to parse PGN. Check format and try again.")

    board = game.board()
    positions = [Position(fen=board.fen())]
    for move in game.mainline_moves():
        san = board.san(move)
        board.push(move)
        positions.append(Position(fen=board.fen(), move=Move(san=san, uci=move.uci())))
    return positions


def _parse_move_list(text: str) -> list[Position]:
    cleaned = _RESULT.sub("", _MOVE_NUMBER.sub("", text))
    board = chess.Board()
    positions = [Position(fen=board.fen())]

    for token in cleaned.split():
        try:
            move = board.parse_san(token)
        except ValueError:
            # Unreadable tokens are skipped, the rest of the game still counts
            continue
        san = board.san(move)
        board.push(move)
        positions.append(Position(fen=board.fen(), move=Move(san=san, uci=move.uci())))

    if len(positions) <= 1:
        raise GameParseError(
            "No valid moves found. Enter moves in standard notation (e.g., e4 e5 Nf3)."
        )
    return positions


def parse_game_input(text: str) -> list[Position]:
    """Build the position list for a game.

    Args:
        text: FEN, PGN or whitespace-separated SAN moves.

    Returns:
        Positions from the starting position onward.

    Raises:
        GameParseError: If the input is empty or cannot be parsed.
    """
    if not isinstance(text, str) or not text.strip():
        raise GameParseError("Enter a PGN, FEN, or moves to analyse.")

    input_type = detect_input_type(text)
    if input_type == "fen":
        return _parse_fen(text)
    if input_type == "pgn":
        return _parse_pgn(text)
    return _parse_move_list(text)
