"""Core enumerations for the session domain."""

from __future__ import annotations

from enum import Enum, IntEnum

import chess


class Color(IntEnum):
    """Side color."""

    WHITE = 0
    BLACK = 1

    @property
    def opposite(self) -> Color:
        return Color(1 - self.value)

    @property
    def is_white(self) -> bool:
        """python-chess represents colors as ``bool`` (``True`` is white)."""
        return self == Color.WHITE

    @classmethod
    def from_chess(cls, color: chess.Color) -> Color:
        return cls.WHITE if color == chess.WHITE else cls.BLACK

    @classmethod
    def parse(cls, text: str) -> Color:
        try:
            return cls[text.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown color: {text!r}") from None

    def __str__(self) -> str:
        return self.name.lower()


class OpponentMode(str, Enum):
    """Who controls the second color."""

    HUMAN = "human"
    ENGINE = "engine"

    def __str__(self) -> str:
        return self.value


class Outcome(IntEnum):
    """Game outcome as reported by the rules engine."""

    IN_PROGRESS = 0
    CHECKMATE = 1
    DRAW = 2

    @property
    def is_resolved(self) -> bool:
        return self != Outcome.IN_PROGRESS
