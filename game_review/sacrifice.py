"""Brilliant and great move detection.

A brilliancy is a best move that leaves material en prise where the
opponent really can take it: at least one capture of a sacrificed
piece neither hangs an equally valuable piece of the capturer nor
allows mate in one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import chess

from game_review.board import (
    PROMOTIONS,
    get_attackers,
    is_piece_hanging,
    piece_value,
)
from game_review.classification import Classification
from game_review.models import InfluencingPiece, Position

logger = logging.getLogger(__name__)

# Minimum gap between the top two lines for a recovery to count as great
_GREAT_MOVE_GAP = 150


@contextmanager
def _simulated_move(board: chess.Board, move: chess.Move) -> Iterator[chess.Board]:
    """Push ``move`` on ``board`` for the duration of the block.

    The move is always popped on exit, including early returns and
    exceptions raised inside the block.

    Raises:
        chess.IllegalMoveError: If the move is not legal; the board is
            left untouched.
    """
    if not board.is_legal(move):
        raise chess.IllegalMoveError(f"illegal move in {board.fen()}: {move.uci()}")
    board.push(move)
    try:
        yield board
    finally:
        board.pop()


def _has_mate_in_one(board: chess.Board) -> bool:
    """Return True if the side to move can deliver checkmate immediately."""
    for move in list(board.legal_moves):
        with _simulated_move(board, move):
            if board.is_checkmate():
                return True
    return False


def _move_destination(position: Position) -> chess.Square | None:
    if position.move is None or len(position.move.uci) < 4:
        return None
    try:
        return chess.parse_square(position.move.uci[2:4])
    except ValueError:
        return None


def find_sacrificed_pieces(
    last_position: Position,
    position: Position,
) -> list[InfluencingPiece]:
    """Find the mover's pieces left hanging by the move.

    Only knights, bishops, rooks and queens worth more than whatever the
    move captured are considered.

    Args:
        last_position: Position before the move.
        position: Position after the move.

    Returns:
        Hanging pieces of the side that just moved.
    """
    destination = _move_destination(position)
    if destination is None:
        return []

    mover = chess.WHITE if position.mover_is_white else chess.BLACK
    captured_value = piece_value(chess.Board(last_position.fen).piece_type_at(destination))

    sacrificed: list[InfluencingPiece] = []
    for square, piece in chess.Board(position.fen).piece_map().items():
        if piece.color != mover:
            continue
        if piece.piece_type in (chess.KING, chess.PAWN):
            continue
        # Something worth as much was just taken; the trade explains it
        if captured_value >= piece_value(piece.piece_type):
            continue
        if is_piece_hanging(last_position.fen, position.fen, square):
            sacrificed.append(InfluencingPiece(
                square=square,
                color=piece.color,
                piece_type=piece.piece_type,
            ))

    return sacrificed


def _capture_is_viable(
    fen: str,
    board: chess.Board,
    max_sacrificed_value: float,
) -> bool:
    """Check a simulated capture already pushed on ``board``.

    The capture is viable unless it hangs a capturer piece worth at
    least the sacrificed material or lets the sacrificing side mate
    in one.
    """
    for square, enemy in board.piece_map().items():
        if enemy.color == board.turn or enemy.piece_type == chess.KING:
            continue
        if (
            piece_value(enemy.piece_type) >= max_sacrificed_value
            and is_piece_hanging(fen, board.fen(), square)
        ):
            return False

    return not _has_mate_in_one(board)


def any_capture_viable(fen: str, sacrificed: list[InfluencingPiece]) -> bool:
    """Return True if some attacker can take a sacrificed piece safely.

    Every attacker of every sacrificed piece is tried with every
    promotion choice on a scratch board; illegal combinations are
    skipped.
    """
    if not sacrificed:
        return False

    board = chess.Board(fen)
    max_sacrificed_value = max(piece_value(p.piece_type) for p in sacrificed)

    for piece in sacrificed:
        for attacker in get_attackers(fen, piece.square):
            for promotion in PROMOTIONS:
                move = chess.Move(attacker.square, piece.square, promotion=promotion)
                try:
                    with _simulated_move(board, move):
                        if _capture_is_viable(fen, board, max_sacrificed_value):
                            return True
                except chess.IllegalMoveError:
                    continue

    return False


def is_brilliant(last_position: Position, position: Position) -> bool:
    """Decide whether a best move is a sound, real sacrifice.

    Args:
        last_position: Position before the move.
        position: Position after the move.

    Returns:
        True if the move sacrificed material that the opponent can
        actually capture.
    """
    sacrificed = find_sacrificed_pieces(last_position, position)
    if not sacrificed:
        return False

    if any_capture_viable(position.fen, sacrificed):
        return True

    logger.debug(
        "Sacrifice by %s is not capturable, keeping best",
        position.move.uci if position.move else "?",
    )
    return False


def is_great_move(last_position: Position, position: Position) -> bool:
    """Decide whether a best move punishes the opponent's blunder.

    The caller guarantees the move was best and that neither evaluation
    involved a forced mate.
    """
    if last_position.classification is not Classification.BLUNDER:
        return False

    top_line = last_position.get_line(1)
    second_line = last_position.get_line(2)
    if top_line is None or second_line is None:
        return False

    gap = abs(top_line.evaluation.value - second_line.evaluation.value)
    if gap < _GREAT_MOVE_GAP:
        return False

    destination = _move_destination(position)
    if destination is None:
        return False
    return not is_piece_hanging(last_position.fen, position.fen, destination)
