"""Durable key-value stores."""

from __future__ import annotations

from PyQt6.QtCore import QSettings

from gambit.core.errors import PersistenceError
from gambit.game.interfaces import IKeyValueStore


class MemoryStore(IKeyValueStore):
    """Dict-backed store; lives as long as the process."""

    __slots__ = ("_data",)

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class QSettingsStore(IKeyValueStore):
    """Store backed by :class:`QSettings` (INI file when *path* is given).

    Every write is synced immediately and the sync status checked, so a
    failed write surfaces as :class:`PersistenceError`.
    """

    __slots__ = ("_settings",)

    def __init__(
        self,
        path: str | None = None,
        *,
        organization: str = "gambit",
        application: str = "gambit",
    ) -> None:
        if path is not None:
            self._settings = QSettings(path, QSettings.Format.IniFormat)
        else:
            self._settings = QSettings(organization, application)

    @property
    def file_name(self) -> str:
        return self._settings.fileName()

    def get(self, key: str) -> str | None:
        self._check("read")
        if not self._settings.contains(key):
            return None
        value = self._settings.value(key)
        if value is None:
            return None
        if isinstance(value, list):  # IniFormat splits unquoted commas
            return ",".join(str(v) for v in value)
        return str(value)

    def set(self, key: str, value: str) -> None:
        self._settings.setValue(key, value)
        self._sync("write")

    def remove(self, key: str) -> None:
        self._settings.remove(key)
        self._sync("remove")

    def _sync(self, action: str) -> None:
        self._settings.sync()
        self._check(action)

    def _check(self, action: str) -> None:
        status = self._settings.status()
        if status == QSettings.Status.AccessError:
            raise PersistenceError(f"Cannot {action} {self.file_name}: access denied")
        if status == QSettings.Status.FormatError:
            raise PersistenceError(f"Cannot {action} {self.file_name}: malformed file")
