"""Error taxonomy shared by every layer.

Lower layers raise these; :class:`~gambit.game.controller.SessionController`
catches them at its boundary and reports them through ``events.on_error``.
"""

from __future__ import annotations


class SessionError(Exception):
    """Base class for all recoverable session errors."""


class InvalidMoveError(SessionError):
    """A move attempt was rejected (illegal, wrong turn, or game over)."""


class EngineProtocolError(SessionError):
    """The engine sent a reply that cannot be applied."""


class EngineTimeoutError(SessionError):
    """The engine did not answer within the configured timeout."""


class EngineStartupError(SessionError):
    """The engine process could not be started or died unexpectedly."""


class PersistenceError(SessionError):
    """Reading from or writing to the durable store failed."""


class CorruptedHistoryError(PersistenceError):
    """A stored move history could not be replayed."""
