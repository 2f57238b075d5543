"""Game layer — session state, persistence and the turn controller.

Quick start::

    from gambit.engine import create_engine_client
    from gambit.game import MemoryStore, SessionController, SessionRepository
    from gambit.settings import SessionSettings

    settings = SessionSettings()
    ctrl = SessionController(
        SessionRepository(MemoryStore(), settings),
        engine_factory=lambda: create_engine_client(settings),
        settings=settings,
    )
    ctrl.restore()
    ctrl.attempt_move("e2", "e4")
"""

from gambit.game.controller import SessionController, SessionEvents
from gambit.game.interfaces import (
    ControllerPhase,
    IEngineClient,
    IEngineTransport,
    IKeyValueStore,
)
from gambit.game.persistence import SessionRepository
from gambit.game.state import Session
from gambit.game.store import MemoryStore, QSettingsStore

__all__ = [
    # Interfaces
    "ControllerPhase",
    "IEngineClient",
    "IEngineTransport",
    "IKeyValueStore",
    # Concrete
    "MemoryStore",
    "QSettingsStore",
    "Session",
    "SessionController",
    "SessionEvents",
    "SessionRepository",
]
