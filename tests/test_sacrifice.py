"""Pytest tests for sacrifice detection and great-move recognition."""

from __future__ import annotations

import chess
import pytest
from unittest.mock import patch

from conftest import build_game, line
from game_review.classification import Classification
from game_review.sacrifice import (
    _has_mate_in_one,
    _simulated_move,
    any_capture_viable,
    find_sacrificed_pieces,
    is_brilliant,
    is_great_move,
)

# Rd8 covers d5 and Re1-e8 mates on the back rank
BACK_RANK_FEN = "3r2k1/5ppp/8/8/8/8/3Q1PPP/4R1K1 w - - 0 1"

# Rd5 offers the rook; Qxd5 hangs the queen to Bb3
ROOK_OFFER_FEN = "3q2k1/5ppp/8/8/8/1B6/5PPP/3R2K1 w - - 0 1"

# Ne2-c1 sits where the d2 pawn can only capture by promoting
PROMOTION_FEN = "6k1/5ppp/8/8/8/8/3pN1PP/7K w - - 0 1"


@pytest.fixture()
def knight_sacrifice():
    """1.e4 e5 2.Nf3 Nc6 3.Nxe5, the knight can be taken by Nc6."""
    return build_game(
        ["e2e4", "e7e5", "g1f3", "b8c6", "f3e5"],
        [[line(1, "e2e4", 30)]] * 5 + [[line(1, "c6e5", 30)]],
    )


@pytest.fixture()
def back_rank_queen():
    """Qd5 offers the queen, but Rxd5 walks into Re8#."""
    return build_game(
        ["d2d5"],
        [[line(1, "d2d5", 500)], [line(1, "d8d5", 500)]],
        start_fen=BACK_RANK_FEN,
    )


# ---------------------------------------------------------------------------
# Scoped move simulation
# ---------------------------------------------------------------------------


class TestSimulatedMove:

    def test_move_pushed_inside_block(self):
        board = chess.Board()
        with _simulated_move(board, chess.Move.from_uci("e2e4")):
            assert board.piece_type_at(chess.E4) == chess.PAWN
        assert board.fen() == chess.STARTING_FEN

    def test_rolled_back_on_exception(self):
        board = chess.Board()
        with pytest.raises(RuntimeError):
            with _simulated_move(board, chess.Move.from_uci("g1f3")):
                raise RuntimeError("boom")
        assert board.fen() == chess.STARTING_FEN

    def test_illegal_move_raises(self):
        board = chess.Board()
        with pytest.raises(chess.IllegalMoveError):
            with _simulated_move(board, chess.Move.from_uci("e2e5")):
                pass
        assert board.fen() == chess.STARTING_FEN

    def test_mate_in_one_found(self):
        board = chess.Board(BACK_RANK_FEN)
        board.push_uci("d2d5")
        board.push_uci("d8d5")
        assert _has_mate_in_one(board)
        assert board.fen().startswith("6k1/5ppp/8/3r4/8/8/5PPP/4R1K1 w")

    def test_no_mate_in_one_at_start(self):
        assert not _has_mate_in_one(chess.Board())


# ---------------------------------------------------------------------------
# Sacrificed pieces
# ---------------------------------------------------------------------------


class TestFindSacrificedPieces:

    def test_knight_left_en_prise(self, knight_sacrifice):
        sacrificed = find_sacrificed_pieces(knight_sacrifice[4], knight_sacrifice[5])
        assert [(p.square, p.piece_type) for p in sacrificed] == [(chess.E5, chess.KNIGHT)]
        assert sacrificed[0].color == chess.WHITE

    def test_quiet_move_sacrifices_nothing(self, knight_sacrifice):
        assert find_sacrificed_pieces(knight_sacrifice[0], knight_sacrifice[1]) == []

    def test_queen_offer(self, back_rank_queen):
        sacrificed = find_sacrificed_pieces(back_rank_queen[0], back_rank_queen[1])
        assert [p.square for p in sacrificed] == [chess.D5]

    def test_no_move(self, knight_sacrifice):
        assert find_sacrificed_pieces(knight_sacrifice[0], knight_sacrifice[0]) == []


# ---------------------------------------------------------------------------
# Brilliancy
# ---------------------------------------------------------------------------


class TestIsBrilliant:

    def test_capturable_sacrifice_is_brilliant(self, knight_sacrifice):
        assert is_brilliant(knight_sacrifice[4], knight_sacrifice[5])

    def test_capture_allowing_mate_is_not(self, back_rank_queen):
        assert not is_brilliant(back_rank_queen[0], back_rank_queen[1])

    def test_no_sacrifice_is_not(self, knight_sacrifice):
        assert not is_brilliant(knight_sacrifice[0], knight_sacrifice[1])

    def test_any_capture_viable_empty(self):
        assert not any_capture_viable(chess.STARTING_FEN, [])

    def test_capture_hanging_the_capturer_is_not(self):
        # Qxd5 wins the rook but Bb3 then takes the queen
        positions = build_game(
            ["d1d5"],
            [[line(1, "d1d5", 300)], [line(1, "d8d5", 300)]],
            start_fen=ROOK_OFFER_FEN,
        )
        sacrificed = find_sacrificed_pieces(positions[0], positions[1])
        assert [(p.square, p.piece_type) for p in sacrificed] == [(chess.D5, chess.ROOK)]
        assert not any_capture_viable(positions[1].fen, sacrificed)
        assert not is_brilliant(positions[0], positions[1])

    def test_promotion_captures_simulated(self):
        # Only d2xc1 with a promotion is legal; the None choice is skipped
        positions = build_game(
            ["e2c1"],
            [[line(1, "e2c1", 0)], [line(1, "d2c1b", 0)]],
            start_fen=PROMOTION_FEN,
        )
        sacrificed = find_sacrificed_pieces(positions[0], positions[1])
        assert [p.square for p in sacrificed] == [chess.C1]

        push = chess.Board.push
        pop = chess.Board.pop
        with patch.object(chess.Board, "push", autospec=True, side_effect=push) as pushed, \
             patch.object(chess.Board, "pop", autospec=True, side_effect=pop) as popped:
            assert any_capture_viable(positions[1].fen, sacrificed)

        first = pushed.call_args_list[0].args[1]
        assert first == chess.Move(chess.D2, chess.C1, promotion=chess.BISHOP)
        assert pushed.call_count == popped.call_count

    def test_board_untouched(self, back_rank_queen):
        fen = back_rank_queen[1].fen
        is_brilliant(back_rank_queen[0], back_rank_queen[1])
        assert back_rank_queen[1].fen == fen


# ---------------------------------------------------------------------------
# Great moves
# ---------------------------------------------------------------------------


def _punished_blunder():
    """1.f3 e5 where 1.f3 is marked a blunder and e5 is far ahead of d5."""
    positions = build_game(
        ["f2f3", "e7e5"],
        [
            [line(1, "e2e4", 30), line(2, "d2d4", 20)],
            [line(1, "e7e5", -300), line(2, "d7d5", -100)],
            [line(1, "g2g4", -300)],
        ],
    )
    positions[1].classification = Classification.BLUNDER
    return positions


class TestIsGreatMove:

    def test_punishing_blunder(self):
        positions = _punished_blunder()
        assert is_great_move(positions[1], positions[2])

    def test_previous_move_not_blunder(self):
        positions = _punished_blunder()
        positions[1].classification = Classification.MISTAKE
        assert not is_great_move(positions[1], positions[2])

    def test_small_gap(self):
        positions = _punished_blunder()
        positions[1].top_lines[1] = line(2, "d7d5", -200)
        assert not is_great_move(positions[1], positions[2])

    def test_needs_second_line(self):
        positions = _punished_blunder()
        positions[1].top_lines = positions[1].top_lines[:1]
        assert not is_great_move(positions[1], positions[2])

    def test_hanging_destination(self):
        positions = build_game(
            ["e2e4", "e7e5", "f1c4", "d7d5"],
            [
                [line(1, "e2e4", 30)],
                [line(1, "e7e5", 30)],
                [line(1, "d7d5", 200), line(2, "g8f6", 30)],
                [line(1, "c4d5", 200)],
                [line(1, "c4d5", 200)],
            ],
        )
        positions[2].classification = Classification.BLUNDER
        # d5 can be taken twice and nothing recaptures
        assert not is_great_move(positions[2], positions[3])
