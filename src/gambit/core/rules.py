"""Rules engine interface over python-chess.

Every function takes and returns FEN strings so callers never hold a
mutable board.  python-chess errors are translated into
:class:`~gambit.core.errors.InvalidMoveError`.
"""

from __future__ import annotations

from collections.abc import Iterable

import chess

from gambit.core.enums import Color, Outcome
from gambit.core.errors import InvalidMoveError
from gambit.core.move import MoveRecord, PieceInfo
from gambit.core.notation import STARTING_FEN, position_from_fen, position_to_fen

_PROMOTION_PIECES = {
    "q": chess.QUEEN,
    "r": chess.ROOK,
    "b": chess.BISHOP,
    "n": chess.KNIGHT,
}


def _board(position: str) -> chess.Board:
    try:
        return position_from_fen(position)
    except ValueError as exc:
        raise InvalidMoveError(f"Invalid position: {exc}") from exc


def _square(name: str) -> chess.Square:
    try:
        return chess.parse_square(name)
    except ValueError:
        raise InvalidMoveError(f"Unknown square: {name!r}") from None


def _promotion_for(
    board: chess.Board,
    from_sq: chess.Square,
    to_sq: chess.Square,
    hint: str | None,
) -> chess.PieceType | None:
    """Promotion piece for the move, defaulting to a queen."""
    if board.piece_type_at(from_sq) != chess.PAWN:
        return None
    last_rank = 7 if board.turn == chess.WHITE else 0
    if chess.square_rank(to_sq) != last_rank:
        return None
    if hint is None:
        return chess.QUEEN
    piece = _PROMOTION_PIECES.get(hint.lower())
    if piece is None:
        raise InvalidMoveError(f"Invalid promotion piece: {hint!r}")
    return piece


def _push(board: chess.Board, move: chess.Move) -> MoveRecord:
    color = Color.from_chess(board.turn)
    san = board.san(move)
    board.push(move)
    return MoveRecord(
        origin=chess.square_name(move.from_square),
        destination=chess.square_name(move.to_square),
        color=color,
        san=san,
        fen_after=position_to_fen(board),
        promotion=chess.piece_symbol(move.promotion) if move.promotion else None,
    )


def apply_move(
    position: str,
    origin: str,
    destination: str,
    promotion: str | None = None,
) -> MoveRecord:
    """Validate and apply a coordinate move to *position*.

    A pawn reaching the last rank without a *promotion* hint promotes to a
    queen.  A hint on any other move is ignored.

    Raises:
        InvalidMoveError: If the move is illegal in *position*.
    """
    board = _board(position)
    from_sq = _square(origin)
    to_sq = _square(destination)

    piece = board.piece_at(from_sq)
    if piece is None or piece.color != board.turn:
        side = Color.from_chess(board.turn)
        raise InvalidMoveError(f"No {side} piece on {origin}")

    move = chess.Move(from_sq, to_sq, _promotion_for(board, from_sq, to_sq, promotion))
    if not board.is_legal(move):
        raise InvalidMoveError(f"Illegal move: {origin}{destination}")
    return _push(board, move)


def apply_san(position: str, san: str) -> MoveRecord:
    """Apply a move given in algebraic notation.

    Raises:
        InvalidMoveError: If *san* is unparsable, ambiguous or illegal.
    """
    board = _board(position)
    try:
        move = board.parse_san(san)
    except ValueError as exc:
        raise InvalidMoveError(f"Cannot apply {san!r}: {exc}") from exc
    if not move:
        raise InvalidMoveError(f"Null move {san!r} is not a move")
    return _push(board, move)


def replay(sans: Iterable[str], start: str = STARTING_FEN) -> list[MoveRecord]:
    """Replay a SAN sequence from *start*; all-or-nothing."""
    records: list[MoveRecord] = []
    position = start
    for san in sans:
        record = apply_san(position, san)
        records.append(record)
        position = record.fen_after
    return records


def legal_destinations(position: str, square: str) -> frozenset[str]:
    board = _board(position)
    from_sq = _square(square)
    return frozenset(
        chess.square_name(m.to_square)
        for m in board.legal_moves
        if m.from_square == from_sq
    )


def is_checkmate(position: str) -> bool:
    return _board(position).is_checkmate()


def outcome(position: str) -> Outcome:
    """Checkmate or automatic draw; claimable draws do not end the game."""
    result = _board(position).outcome()
    if result is None:
        return Outcome.IN_PROGRESS
    if result.termination == chess.Termination.CHECKMATE:
        return Outcome.CHECKMATE
    return Outcome.DRAW


def piece_at(position: str, square: str) -> PieceInfo | None:
    piece = _board(position).piece_at(_square(square))
    if piece is None:
        return None
    return PieceInfo(Color.from_chess(piece.color), piece.symbol().lower())
