"""Persistence Adapter: Session <-> JSON record in a key-value store.

Only SAN history and configuration are stored.  Loading replays the
history through the rules engine, so a record that does not replay
cleanly is rejected as a whole.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from gambit.core.enums import Color, OpponentMode
from gambit.core.errors import CorruptedHistoryError, InvalidMoveError, PersistenceError
from gambit.game.interfaces import IKeyValueStore
from gambit.game.state import Session
from gambit.settings import SessionSettings

_LOGGER = logging.getLogger(__name__)

FORMAT_VERSION = 1


def session_to_record(session: Session) -> dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "history": [record.san for record in session.history],
        "position": session.position,
        "search_depth": session.search_depth,
        "opponent_mode": session.opponent_mode.value,
        "human_color": str(session.human_color),
    }


class SessionRepository:
    """Reads and writes one session under a single store key."""

    __slots__ = ("_store", "_key", "_settings")

    def __init__(
        self,
        store: IKeyValueStore,
        settings: SessionSettings | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or SessionSettings()
        self._key = self._settings.storage_key

    @property
    def key(self) -> str:
        return self._key

    def save(self, session: Session) -> None:
        """Write *session*.

        Raises:
            PersistenceError: If the store rejects the write.
        """
        payload = json.dumps(session_to_record(session), separators=(",", ":"))
        try:
            self._store.set(self._key, payload)
        except OSError as exc:
            raise PersistenceError(f"Cannot save session: {exc}") from exc

    def load(self) -> Session | None:
        """Reconstruct the stored session, or ``None`` if nothing is stored.

        Raises:
            CorruptedHistoryError: If the record is malformed or any stored
                move fails to replay.
            PersistenceError: If the store cannot be read.
        """
        try:
            raw = self._store.get(self._key)
        except OSError as exc:
            raise PersistenceError(f"Cannot read session: {exc}") from exc
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise CorruptedHistoryError(f"Stored session is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CorruptedHistoryError("Stored session is not an object")

        history = data.get("history", [])
        if not isinstance(history, list) or not all(isinstance(s, str) for s in history):
            raise CorruptedHistoryError("Stored history is not a list of moves")

        try:
            session = Session.replayed(
                history,
                opponent_mode=self._opponent_mode(data),
                search_depth=self._search_depth(data),
                human_color=self._human_color(data),
            )
        except InvalidMoveError as exc:
            raise CorruptedHistoryError(f"Stored history does not replay: {exc}") from exc

        stored_position = data.get("position")
        if stored_position is not None and stored_position != session.position:
            raise CorruptedHistoryError("Stored position does not match replayed history")

        _LOGGER.info("Loaded session with %d plies", session.ply_count)
        return session

    def clear(self) -> None:
        """Remove the stored session.

        Raises:
            PersistenceError: If the store rejects the removal.
        """
        try:
            self._store.remove(self._key)
        except OSError as exc:
            raise PersistenceError(f"Cannot clear session: {exc}") from exc

    # ── Field decoding ───────────────────────────────────────────────────

    def _search_depth(self, data: dict[str, Any]) -> int:
        depth = data.get("search_depth", self._settings.default_depth)
        if isinstance(depth, bool) or not isinstance(depth, int):
            raise CorruptedHistoryError(f"Invalid stored search depth: {depth!r}")
        return self._settings.clamp_depth(depth)

    def _opponent_mode(self, data: dict[str, Any]) -> OpponentMode:
        raw = data.get("opponent_mode", self._settings.opponent_mode.value)
        try:
            return OpponentMode(raw)
        except ValueError as exc:
            raise CorruptedHistoryError(f"Invalid stored opponent mode: {raw!r}") from exc

    def _human_color(self, data: dict[str, Any]) -> Color:
        raw = data.get("human_color", str(self._settings.human_color))
        if not isinstance(raw, str):
            raise CorruptedHistoryError(f"Invalid stored color: {raw!r}")
        try:
            return Color.parse(raw)
        except ValueError as exc:
            raise CorruptedHistoryError(f"Invalid stored color: {raw!r}") from exc
