"""Board influence analysis: attackers, defenders and hanging pieces.

All queries take FEN strings and build their own boards, so callers
never share mutable state with them.
"""

from __future__ import annotations

import chess

from game_review.models import InfluencingPiece

# Piece values for sacrifice and exchange checks
PIECE_VALUES: dict[int, float] = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: float("inf"),
}

# Promotion choices tried for every simulated capture (None = no promotion)
PROMOTIONS: tuple[int | None, ...] = (
    None,
    chess.BISHOP,
    chess.KNIGHT,
    chess.ROOK,
    chess.QUEEN,
)


def piece_value(piece_type: int | None) -> float:
    """Return the value of a piece type, 0 for an empty square."""
    if piece_type is None:
        return 0
    return PIECE_VALUES.get(piece_type, 0)


def _with_turn(fen: str, color: chess.Color) -> chess.Board:
    """Build a board from FEN with the side to move forced to ``color``."""
    board = chess.Board(fen)
    board.turn = color
    board.ep_square = None
    return board


def _moves_onto(board: chess.Board, square: chess.Square) -> list[InfluencingPiece]:
    """List the side to move's legal moves that land on ``square``."""
    pieces: list[InfluencingPiece] = []
    for move in board.legal_moves:
        if move.to_square != square:
            continue
        pieces.append(InfluencingPiece(
            square=move.from_square,
            color=board.turn,
            piece_type=board.piece_type_at(move.from_square),
        ))
    return pieces


def get_attackers(fen: str, square: chess.Square) -> list[InfluencingPiece]:
    """Get all enemy pieces that can capture the piece on ``square``.

    The opposing side is made the side to move and its legal moves onto
    the square are collected. An enemy king next to the square is added
    as well when it is not the only attacker or when it can legally make
    the capture itself.

    Args:
        fen: Position to inspect.
        square: Square holding the attacked piece.

    Returns:
        Attacking pieces, one entry per legal capturing move. Empty if
        the square is empty.
    """
    piece = chess.Board(fen).piece_at(square)
    if piece is None:
        return []

    enemy = not piece.color
    board = _with_turn(fen, enemy)
    attackers = _moves_onto(board, square)

    king_mask = chess.BB_KING_ATTACKS[square] & board.kings & board.occupied_co[enemy]
    if not king_mask:
        return attackers

    king_square = chess.lsb(king_mask)
    king_capture_legal = board.is_legal(chess.Move(king_square, square))

    if attackers or king_capture_legal:
        attackers.append(InfluencingPiece(
            square=king_square,
            color=enemy,
            piece_type=chess.KING,
        ))

    return attackers


def get_defenders(fen: str, square: chess.Square) -> list[InfluencingPiece]:
    """Get same-colour pieces with a legal move onto ``square``.

    The occupant is left on the board, so recaptures through the
    square itself are not seen and pinned or blocked defenders are
    undercounted.
    """
    piece = chess.Board(fen).piece_at(square)
    if piece is None:
        return []

    return _moves_onto(_with_turn(fen, piece.color), square)


def is_piece_hanging(last_fen: str, fen: str, square: chess.Square) -> bool:
    """Determine whether the piece on ``square`` is inadequately defended.

    Args:
        last_fen: Position before the move that produced ``fen``.
        fen: Position to inspect.
        square: Square of the candidate piece.

    Returns:
        True if the piece can be won, False otherwise (including when
        the square is empty).
    """
    last_piece = chess.Board(last_fen).piece_at(square)
    piece = chess.Board(fen).piece_at(square)
    if piece is None:
        return False

    value = piece_value(piece.piece_type)
    attackers = get_attackers(fen, square)
    defenders = get_defenders(fen, square)

    # Just took an equal or more valuable piece: a trade, not a hang
    if (
        last_piece is not None
        and last_piece.color != piece.color
        and piece_value(last_piece.piece_type) >= value
    ):
        return False

    # Rook took a minor piece guarded by a single minor piece
    if (
        last_piece is not None
        and piece.piece_type == chess.ROOK
        and piece_value(last_piece.piece_type) == 3
        and len(attackers) == 1
        and all(piece_value(a.piece_type) == 3 for a in attackers)
    ):
        return False

    if any(piece_value(a.piece_type) < value for a in attackers):
        return True

    if len(attackers) > len(defenders):
        min_attacker_value = min(piece_value(a.piece_type) for a in attackers)

        # Taking it would itself be a sacrifice
        if value < min_attacker_value and any(
            piece_value(d.piece_type) < min_attacker_value for d in defenders
        ):
            return False

        # A pawn defender means the pawn is what is being offered
        if any(piece_value(d.piece_type) == 1 for d in defenders):
            return False

        return True

    return False
