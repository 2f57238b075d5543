"""Shared pytest fixtures used across the test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest

from gambit.engine.client import EngineClient
from gambit.game.controller import SessionController
from gambit.game.interfaces import FailureCallback, LineCallback
from gambit.game.persistence import SessionRepository
from gambit.game.store import MemoryStore
from gambit.settings import SessionSettings


@pytest.fixture(scope="session")
def qapp() -> Iterator[object]:
    """Provide a singleton QCoreApplication for timers and processes."""
    from PyQt6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


class StubTransport:
    """Records written lines and lets a test feed engine output."""

    def __init__(self, *, fail_on_start: str | None = None) -> None:
        self.lines: list[str] = []
        self.started = False
        self.terminated = False
        self._fail_on_start = fail_on_start
        self._on_line: LineCallback | None = None
        self._on_failure: FailureCallback | None = None

    def start(self, on_line: LineCallback, on_failure: FailureCallback) -> None:
        self.started = True
        self._on_line = on_line
        self._on_failure = on_failure
        if self._fail_on_start is not None:
            on_failure(self._fail_on_start)

    def write_line(self, line: str) -> None:
        self.lines.append(line)

    def terminate(self) -> None:
        self.terminated = True

    def feed(self, line: str) -> None:
        assert self._on_line is not None, "transport not started"
        self._on_line(line)

    def fail(self, message: str) -> None:
        assert self._on_failure is not None, "transport not started"
        self._on_failure(message)

    @property
    def requests(self) -> list[str]:
        """Lines other than the handshake and ``stop``."""
        return [ln for ln in self.lines if ln.startswith(("position", "go"))]


@pytest.fixture
def transports() -> list[StubTransport]:
    """Every transport created by ``engine_factory``, oldest first."""
    return []


@pytest.fixture
def engine_factory(
    qapp: object, transports: list[StubTransport]
) -> Callable[[], EngineClient]:
    def factory() -> EngineClient:
        transport = StubTransport()
        transports.append(transport)
        return EngineClient(transport)

    return factory


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def settings() -> SessionSettings:
    return SessionSettings()


@pytest.fixture
def controller(
    store: MemoryStore,
    settings: SessionSettings,
    engine_factory: Callable[[], EngineClient],
) -> Iterator[SessionController]:
    ctrl = SessionController(
        SessionRepository(store, settings),
        engine_factory=engine_factory,
        settings=settings,
    )
    ctrl.new_game()
    yield ctrl
    ctrl.shutdown()
