"""Session: the authoritative record of one game.

A :class:`Session` is an immutable value.  Every mutation returns a new
snapshot, and the controller swaps its reference.  ``turn``, ``position``
and ``outcome`` are derived from ``history`` and never stored separately.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import cached_property

from gambit.core import rules
from gambit.core.enums import Color, OpponentMode, Outcome
from gambit.core.errors import InvalidMoveError
from gambit.core.move import MoveRecord
from gambit.core.notation import STARTING_FEN


@dataclass(frozen=True)
class Session:
    """One game: move history plus opponent configuration."""

    opponent_mode: OpponentMode = OpponentMode.ENGINE
    search_depth: int = 5
    human_color: Color = Color.WHITE
    history: tuple[MoveRecord, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.search_depth < 1:
            raise ValueError(f"search_depth must be positive, got {self.search_depth}")

    # ── Derived state ────────────────────────────────────────────────────

    @property
    def position(self) -> str:
        """FEN after the last ply."""
        if not self.history:
            return STARTING_FEN
        return self.history[-1].fen_after

    @property
    def turn(self) -> Color:
        return Color.WHITE if len(self.history) % 2 == 0 else Color.BLACK

    @cached_property
    def outcome(self) -> Outcome:
        return rules.outcome(self.position)

    @property
    def winner(self) -> Color | None:
        """Side that delivered mate, ``None`` otherwise."""
        if self.outcome == Outcome.CHECKMATE:
            return self.turn.opposite
        return None

    @property
    def engine_color(self) -> Color | None:
        if self.opponent_mode != OpponentMode.ENGINE:
            return None
        return self.human_color.opposite

    @property
    def ply_count(self) -> int:
        return len(self.history)

    def is_engine_turn(self) -> bool:
        return self.engine_color == self.turn

    def last_move(self, color: Color) -> MoveRecord | None:
        """Most recent ply played by *color*."""
        for record in reversed(self.history):
            if record.color == color:
                return record
        return None

    # ── Transitions ──────────────────────────────────────────────────────

    def with_move(self, record: MoveRecord) -> Session:
        """Return a session with *record* appended.

        Raises:
            InvalidMoveError: If the game is over or *record* is out of turn.
        """
        if self.outcome.is_resolved:
            raise InvalidMoveError("Game is over")
        if record.color != self.turn:
            raise InvalidMoveError(f"It is {self.turn}'s turn, not {record.color}'s")
        return replace(self, history=(*self.history, record))

    def without_last(self, plies: int) -> Session:
        """Return a session with the last *plies* moves retracted."""
        if plies < 0 or plies > len(self.history):
            raise ValueError(f"Cannot retract {plies} of {len(self.history)} plies")
        if plies == 0:
            return self
        return replace(self, history=self.history[:-plies])

    def with_search_depth(self, depth: int) -> Session:
        return replace(self, search_depth=depth)

    # ── Construction ─────────────────────────────────────────────────────

    @classmethod
    def replayed(
        cls,
        sans: list[str],
        *,
        opponent_mode: OpponentMode = OpponentMode.ENGINE,
        search_depth: int = 5,
        human_color: Color = Color.WHITE,
    ) -> Session:
        """Rebuild a session by replaying *sans* from the initial position.

        Raises:
            InvalidMoveError: If any move fails to reapply.
        """
        session = cls(
            opponent_mode=opponent_mode,
            search_depth=search_depth,
            human_color=human_color,
        )
        for record in rules.replay(sans):
            session = session.with_move(record)
        return session
