"""Tests for the python-chess rules adapter."""

import pytest

from gambit.core import rules
from gambit.core.enums import Color, Outcome
from gambit.core.errors import InvalidMoveError
from gambit.core.move import PieceInfo
from gambit.core.notation import STARTING_FEN

PROMOTION_FEN = "4k3/P7/8/8/8/8/8/4K3 w - - 0 1"
STALEMATE_FEN = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
BARE_KINGS_FEN = "8/8/8/8/8/8/8/k6K w - - 0 1"


class TestApplyMove:
    def test_legal_move_record(self) -> None:
        record = rules.apply_move(STARTING_FEN, "e2", "e4")
        assert record.san == "e4"
        assert record.color == Color.WHITE
        assert record.uci == "e2e4"
        assert " b " in record.fen_after

    def test_empty_origin_rejected(self) -> None:
        with pytest.raises(InvalidMoveError, match="No white piece on e4"):
            rules.apply_move(STARTING_FEN, "e4", "e5")

    def test_opponent_piece_rejected(self) -> None:
        with pytest.raises(InvalidMoveError):
            rules.apply_move(STARTING_FEN, "e7", "e5")

    def test_illegal_destination_rejected(self) -> None:
        with pytest.raises(InvalidMoveError, match="Illegal move"):
            rules.apply_move(STARTING_FEN, "e2", "e5")

    def test_unknown_square_rejected(self) -> None:
        with pytest.raises(InvalidMoveError, match="Unknown square"):
            rules.apply_move(STARTING_FEN, "z9", "e4")

    def test_promotion_defaults_to_queen(self) -> None:
        record = rules.apply_move(PROMOTION_FEN, "a7", "a8")
        assert record.promotion == "q"
        assert record.uci == "a7a8q"
        assert record.san.startswith("a8=Q")

    def test_promotion_hint_is_honoured(self) -> None:
        record = rules.apply_move(PROMOTION_FEN, "a7", "a8", "n")
        assert record.promotion == "n"
        assert record.san == "a8=N"

    def test_invalid_promotion_hint_rejected(self) -> None:
        with pytest.raises(InvalidMoveError):
            rules.apply_move(PROMOTION_FEN, "a7", "a8", "k")

    def test_promotion_hint_ignored_on_normal_move(self) -> None:
        record = rules.apply_move(STARTING_FEN, "e2", "e4", "q")
        assert record.promotion is None

    def test_does_not_touch_input_position(self) -> None:
        before = STARTING_FEN
        rules.apply_move(before, "e2", "e4")
        assert before == STARTING_FEN


class TestApplySan:
    def test_san(self) -> None:
        record = rules.apply_san(STARTING_FEN, "Nf3")
        assert (record.origin, record.destination) == ("g1", "f3")

    @pytest.mark.parametrize("san", ["Nf6", "zz", "", "e5", "--"])
    def test_bad_san_rejected(self, san: str) -> None:
        with pytest.raises(InvalidMoveError):
            rules.apply_san(STARTING_FEN, san)

    def test_replay(self) -> None:
        records = rules.replay(["e4", "e5", "Nf3"])
        assert [r.san for r in records] == ["e4", "e5", "Nf3"]
        assert [r.color for r in records] == [Color.WHITE, Color.BLACK, Color.WHITE]
        assert records[-1].fen_after == (
            "rnbqkbnr/pppp1ppp/8/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R b KQkq - 1 2"
        )

    def test_replay_stops_on_first_bad_move(self) -> None:
        with pytest.raises(InvalidMoveError):
            rules.replay(["e4", "e5", "Qxf7"])


class TestQueries:
    def test_legal_destinations(self) -> None:
        assert rules.legal_destinations(STARTING_FEN, "e2") == {"e3", "e4"}
        assert rules.legal_destinations(STARTING_FEN, "g1") == {"f3", "h3"}

    def test_legal_destinations_empty_square(self) -> None:
        assert rules.legal_destinations(STARTING_FEN, "e4") == frozenset()

    def test_piece_at(self) -> None:
        assert rules.piece_at(STARTING_FEN, "e1") == PieceInfo(Color.WHITE, "k")
        assert rules.piece_at(STARTING_FEN, "d8") == PieceInfo(Color.BLACK, "q")
        assert rules.piece_at(STARTING_FEN, "e4") is None

    def test_checkmate(self) -> None:
        fen = STARTING_FEN
        for san in ("f3", "e5", "g4", "Qh4#"):
            fen = rules.apply_san(fen, san).fen_after
        assert rules.is_checkmate(fen)
        assert rules.outcome(fen) == Outcome.CHECKMATE

    def test_in_progress(self) -> None:
        assert not rules.is_checkmate(STARTING_FEN)
        assert rules.outcome(STARTING_FEN) == Outcome.IN_PROGRESS

    def test_stalemate_is_draw(self) -> None:
        assert rules.outcome(STALEMATE_FEN) == Outcome.DRAW

    def test_insufficient_material_is_draw(self) -> None:
        assert rules.outcome(BARE_KINGS_FEN) == Outcome.DRAW
