"""Abstract interfaces for the game layer.

The controller depends on these, not on ``QProcess`` / ``QSettings``,
so tests can plug in stubs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import IntEnum, auto
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from gambit.engine.protocol import EngineRequest
    from gambit.engine.client import EngineEvents


# ── Controller FSM states ────────────────────────────────────────────────────


class ControllerPhase(IntEnum):
    """Finite-state-machine states of the session controller."""

    WAITING_FOR_INPUT = auto()
    AWAITING_ENGINE = auto()
    GAME_OVER = auto()


# ── Engine side ──────────────────────────────────────────────────────────────


LineCallback = Callable[[str], None]
FailureCallback = Callable[[str], None]


class IEngineTransport(Protocol):
    """Line-oriented pipe to the engine process."""

    def start(self, on_line: LineCallback, on_failure: FailureCallback) -> None: ...

    def write_line(self, line: str) -> None: ...

    def terminate(self) -> None: ...


class IEngineClient(ABC):
    """Interface for the move-search engine connection."""

    events: EngineEvents

    @abstractmethod
    def start(self) -> None:
        """Launch the engine process."""

    @abstractmethod
    def submit(self, request: EngineRequest) -> None:
        """Send *request*; the reply arrives later through ``events``."""

    @abstractmethod
    def cancel(self) -> None:
        """Abandon the in-flight request, if any."""

    @abstractmethod
    def shutdown(self) -> None:
        """Terminate the engine process.  No events fire afterwards."""


# ── Durable store ────────────────────────────────────────────────────────────


class IKeyValueStore(ABC):
    """String-keyed, string-valued durable store without transactions."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value or ``None`` when absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete *key*; a missing key is not an error."""
