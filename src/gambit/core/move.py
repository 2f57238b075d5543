"""Move and piece value objects."""

from __future__ import annotations

from dataclasses import dataclass

from gambit.core.enums import Color


@dataclass(slots=True, frozen=True)
class MoveRecord:
    """A completed ply, as appended to the session history."""

    origin: str
    destination: str
    color: Color
    san: str
    fen_after: str
    promotion: str | None = None

    @property
    def uci(self) -> str:
        """Compact coordinate form, e.g. ``e2e4`` or ``e7e8q``."""
        return f"{self.origin}{self.destination}{self.promotion or ''}"

    def __str__(self) -> str:
        return self.san


@dataclass(slots=True, frozen=True)
class PieceInfo:
    """Occupant of a square: ``kind`` is the lowercase piece letter."""

    color: Color
    kind: str
