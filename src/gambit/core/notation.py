"""Position Notation Adapter.

Converts between python-chess boards and the plain FEN strings used for
persistence and on the engine wire, and parses compact coordinate moves.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import chess

STARTING_FEN = chess.STARTING_FEN

_COORDINATE_RE = re.compile(r"^([a-h][1-8])([a-h][1-8])([qrbn])?$")


def position_to_fen(board: chess.Board) -> str:
    """Serialize *board* to a FEN string."""
    return board.fen()


def position_from_fen(fen: str) -> chess.Board:
    """Parse *fen* into a fresh board.

    Raises:
        ValueError: If *fen* is not a valid FEN string.
    """
    return chess.Board(fen)


def is_square_name(text: str) -> bool:
    return text in chess.SQUARE_NAMES


@dataclass(slots=True, frozen=True)
class CoordinateMove:
    """Origin/destination pair with an optional promotion letter."""

    origin: str
    destination: str
    promotion: str | None = None

    @classmethod
    def parse(cls, text: str) -> CoordinateMove:
        """Parse ``e2e4`` / ``e7e8q`` style text.

        Raises:
            ValueError: If *text* is not a 4 or 5 character coordinate move.
        """
        m = _COORDINATE_RE.match(text.strip().lower())
        if m is None:
            raise ValueError(f"Invalid coordinate move: {text!r}")
        return cls(m.group(1), m.group(2), m.group(3))

    def __str__(self) -> str:
        return f"{self.origin}{self.destination}{self.promotion or ''}"
