"""User-configurable session settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

from gambit.core.enums import Color, OpponentMode
from gambit.core.errors import PersistenceError

if TYPE_CHECKING:
    from gambit.game.interfaces import IKeyValueStore

_LOGGER = logging.getLogger(__name__)

SETTINGS_PREFIX = "settings/"


@dataclass
class SessionSettings:
    """All user-configurable settings."""

    # Engine strength
    min_depth: int = 5
    max_depth: int = 20
    default_depth: int = 5

    # Engine process
    engine_path: str = "stockfish"
    engine_args: tuple[str, ...] = ()
    engine_timeout_ms: int | None = None  # None: wait forever

    # Session
    storage_key: str = "gambit/session"
    human_color: Color = Color.WHITE
    opponent_mode: OpponentMode = OpponentMode.ENGINE

    def clamp_depth(self, depth: int) -> int:
        return max(self.min_depth, min(self.max_depth, int(depth)))

    @classmethod
    def from_store(cls, store: IKeyValueStore) -> SessionSettings:
        """Overlay defaults with ``settings/<field>`` values from *store*.

        An unreadable store yields the defaults.
        """
        settings = cls()
        for f in fields(cls):
            try:
                raw = store.get(SETTINGS_PREFIX + f.name)
            except PersistenceError as exc:
                _LOGGER.warning("Cannot read settings, using defaults: %s", exc)
                return cls()
            if raw is None:
                continue
            try:
                setattr(settings, f.name, _coerce(f.name, raw))
            except ValueError:
                _LOGGER.warning("Ignoring invalid setting %s=%r", f.name, raw)
        if settings.min_depth > settings.max_depth:
            _LOGGER.warning("Depth range %d..%d is empty; using defaults",
                            settings.min_depth, settings.max_depth)
            settings.min_depth, settings.max_depth = cls.min_depth, cls.max_depth
        settings.default_depth = settings.clamp_depth(settings.default_depth)
        return settings


def _coerce(name: str, raw: str) -> object:
    if name in ("min_depth", "max_depth", "default_depth"):
        value = int(raw)
        if value < 1:
            raise ValueError(name)
        return value
    if name == "engine_timeout_ms":
        value = int(raw)
        return value if value > 0 else None
    if name == "engine_args":
        return tuple(raw.split())
    if name == "human_color":
        return Color.parse(raw)
    if name == "opponent_mode":
        return OpponentMode(raw.strip().lower())
    return raw
