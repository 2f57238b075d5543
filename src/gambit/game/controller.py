"""SessionController — the turn state machine of a game session.

Coordinates: Session, rules engine, engine client, SessionRepository.
Emits events via simple callbacks so the UI / tests can subscribe.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from gambit.core import rules
from gambit.core.enums import Color, OpponentMode, Outcome
from gambit.core.errors import (
    CorruptedHistoryError,
    EngineProtocolError,
    EngineStartupError,
    InvalidMoveError,
    PersistenceError,
    SessionError,
)
from gambit.core.move import MoveRecord, PieceInfo
from gambit.engine.protocol import EngineReply, EngineRequest
from gambit.game.interfaces import ControllerPhase, IEngineClient
from gambit.game.persistence import SessionRepository
from gambit.game.state import Session
from gambit.settings import SessionSettings

_LOGGER = logging.getLogger(__name__)

# ── Event definitions ────────────────────────────────────────────────────────

MoveCallback = Callable[[MoveRecord, Session], None]
SessionCallback = Callable[[Session], None]
PhaseCallback = Callable[[ControllerPhase], None]
ThinkingCallback = Callable[[bool], None]
GameOverCallback = Callable[[Outcome], None]
ErrorCallback = Callable[[SessionError], None]

EngineFactory = Callable[[], IEngineClient]


@dataclass
class SessionEvents:
    """Observable callbacks. Multiple handlers per event."""

    on_move: list[MoveCallback] = field(default_factory=list)
    on_position_changed: list[SessionCallback] = field(default_factory=list)
    on_phase_changed: list[PhaseCallback] = field(default_factory=list)
    on_thinking_changed: list[ThinkingCallback] = field(default_factory=list)
    on_game_over: list[GameOverCallback] = field(default_factory=list)
    on_error: list[ErrorCallback] = field(default_factory=list)


# ── Controller ───────────────────────────────────────────────────────────────


class SessionController:
    """Owns the current :class:`Session` and every mutation of it.

    Thread-safety: all methods must be called from a single thread (the
    Qt event loop thread).  Engine replies arrive on that thread too, so
    mutations never interleave.

    Each installed session gets a new *generation*.  Engine callbacks are
    bound to the generation they were created for, and a reply is applied
    only if its generation, request id and position all match the request
    currently outstanding.

    Call :meth:`restore` or :meth:`new_game` before playing.
    """

    __slots__ = (
        "_settings",
        "_repository",
        "_engine_factory",
        "_session",
        "_phase",
        "_engine",
        "_engine_available",
        "_generation",
        "_request_seq",
        "_pending",
        "_last_error",
        "events",
    )

    def __init__(
        self,
        repository: SessionRepository,
        *,
        engine_factory: EngineFactory | None = None,
        settings: SessionSettings | None = None,
    ) -> None:
        self._settings = settings or SessionSettings()
        self._repository = repository
        self._engine_factory = engine_factory
        self._session = self._fresh_session()
        self._phase = ControllerPhase.WAITING_FOR_INPUT
        self._engine: IEngineClient | None = None
        self._engine_available = False
        self._generation = 0
        self._request_seq = 0
        self._pending: EngineRequest | None = None
        self._last_error: SessionError | None = None
        self.events = SessionEvents()

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def session(self) -> Session:
        return self._session

    @property
    def phase(self) -> ControllerPhase:
        return self._phase

    @property
    def position(self) -> str:
        return self._session.position

    @property
    def turn(self) -> Color:
        return self._session.turn

    @property
    def outcome(self) -> Outcome:
        return self._session.outcome

    @property
    def winner(self) -> Color | None:
        return self._session.winner

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_engine_thinking(self) -> bool:
        return self._pending is not None

    @property
    def engine_available(self) -> bool:
        return self._engine_available

    @property
    def last_error(self) -> SessionError | None:
        return self._last_error

    def last_move(self, color: Color) -> str:
        """SAN of the last move played by *color*, or ``""``."""
        record = self._session.last_move(color)
        return record.san if record is not None else ""

    def legal_destinations(self, square: str) -> frozenset[str]:
        try:
            return rules.legal_destinations(self._session.position, square)
        except InvalidMoveError:
            return frozenset()

    def piece_at(self, square: str) -> PieceInfo | None:
        try:
            return rules.piece_at(self._session.position, square)
        except InvalidMoveError:
            return None

    # ── Session lifecycle ────────────────────────────────────────────────

    def restore(self) -> bool:
        """Load the stored session, falling back to a fresh one.

        Returns True if a stored session was restored.
        """
        try:
            session = self._repository.load()
        except CorruptedHistoryError as exc:
            self._report(exc)
            self._clear_storage()
            session = None
        except PersistenceError as exc:
            self._report(exc)
            session = None

        restored = session is not None
        if session is None:
            session = self._fresh_session()
        else:
            _LOGGER.info("Restored session after %d plies", session.ply_count)
        self._install(session)
        return restored

    def new_game(
        self,
        opponent_mode: OpponentMode | None = None,
        search_depth: int | None = None,
        human_color: Color | None = None,
    ) -> None:
        """Discard the current game and any stored copy of it."""
        session = self._fresh_session(opponent_mode, search_depth, human_color)
        self._clear_storage()
        _LOGGER.info(
            "New game: %s opponent, human plays %s, depth %d",
            session.opponent_mode,
            session.human_color,
            session.search_depth,
        )
        self._install(session)

    def shutdown(self) -> None:
        """Terminate the engine connection."""
        self._teardown_engine()

    # ── Moves ────────────────────────────────────────────────────────────

    def attempt_move(
        self,
        origin: str,
        destination: str,
        promotion: str | None = None,
    ) -> bool:
        """Apply a human move.  Returns True if legal and applied."""
        if self._phase == ControllerPhase.GAME_OVER:
            return self._reject(InvalidMoveError("Game is over"))
        if self._phase == ControllerPhase.AWAITING_ENGINE:
            return self._reject(InvalidMoveError("Engine is thinking"))
        if self._session.is_engine_turn():
            return self._reject(InvalidMoveError("It is the engine's turn"))

        try:
            record = rules.apply_move(self._session.position, origin, destination, promotion)
            session = self._session.with_move(record)
        except InvalidMoveError as exc:
            return self._reject(exc)

        self._commit(session, record)
        return True

    def request_engine_move(self) -> bool:
        """Send the current position to the engine.

        A no-op while a request is already outstanding.
        """
        if self._phase != ControllerPhase.AWAITING_ENGINE:
            _LOGGER.debug("Engine move requested in phase %s; ignored", self._phase.name)
            return False
        if self._pending is not None:
            _LOGGER.debug("Engine request %d already in flight", self._pending.request_id)
            return False
        if self._engine is None or not self._engine_available:
            return False

        self._request_seq += 1
        request = EngineRequest(
            self._request_seq,
            self._session.position,
            self._session.search_depth,
        )
        self._set_pending(request)
        try:
            self._engine.submit(request)
        except EngineStartupError as exc:
            self._engine_unavailable(exc)
            return False
        return True

    def retry_engine_move(self) -> bool:
        """Ask the engine again after a failed or timed-out request."""
        if self._phase != ControllerPhase.WAITING_FOR_INPUT:
            return False
        if not self._session.is_engine_turn() or not self._engine_available:
            return False
        self._set_phase(ControllerPhase.AWAITING_ENGINE)
        return self.request_engine_move()

    def on_engine_move_ready(self, reply: EngineReply, *, generation: int) -> bool:
        """Apply the engine's reply if it answers the outstanding request."""
        if not self._is_current(generation, reply.request_id, reply.fen):
            _LOGGER.debug(
                "Discarding stale engine reply %d (generation %d)",
                reply.request_id,
                generation,
            )
            return False

        self._set_pending(None)
        move = reply.move
        try:
            record = rules.apply_move(
                self._session.position, move.origin, move.destination, move.promotion
            )
            session = self._session.with_move(record)
        except InvalidMoveError as exc:
            self._report(EngineProtocolError(f"Engine proposed illegal move {move}: {exc}"))
            self._set_phase(ControllerPhase.WAITING_FOR_INPUT)
            return False

        self._commit(session, record)
        return True

    def undo(self) -> bool:
        """Retract the human's last move together with any engine reply.

        Against the engine: one ply if the engine is to move, two plies
        (engine reply plus human move) if the human is to move.  In
        human-vs-human games exactly one ply is retracted.
        """
        plies = self._plies_to_retract()
        if plies == 0:
            return False

        self._cancel_engine_request()
        self._session = self._session.without_last(plies)
        self._persist()
        self._emit_position_changed()
        self._set_phase(ControllerPhase.WAITING_FOR_INPUT)
        return True

    def set_search_depth(self, depth: int) -> int:
        """Clamp and store *depth*; used from the next engine request on."""
        clamped = self._settings.clamp_depth(depth)
        if clamped != self._session.search_depth:
            self._session = self._session.with_search_depth(clamped)
            self._persist()
        return clamped

    # ── Internal helpers ─────────────────────────────────────────────────

    def _fresh_session(
        self,
        opponent_mode: OpponentMode | None = None,
        search_depth: int | None = None,
        human_color: Color | None = None,
    ) -> Session:
        s = self._settings
        return Session(
            opponent_mode=s.opponent_mode if opponent_mode is None else opponent_mode,
            search_depth=s.clamp_depth(s.default_depth if search_depth is None else search_depth),
            human_color=s.human_color if human_color is None else human_color,
        )

    def _install(self, session: Session) -> None:
        self._teardown_engine()
        self._generation += 1
        self._session = session
        if session.opponent_mode == OpponentMode.ENGINE:
            self._start_engine()
        self._emit_position_changed()
        self._advance()

    def _start_engine(self) -> None:
        if self._engine_factory is None:
            self._engine_unavailable(EngineStartupError("No engine configured"), force=True)
            return

        generation = self._generation
        engine = self._engine_factory()
        engine.events.on_reply.append(
            lambda reply: self.on_engine_move_ready(reply, generation=generation)
        )
        engine.events.on_error.append(
            lambda request_id, error: self._on_engine_error(generation, request_id, error)
        )
        self._engine = engine
        self._engine_available = True
        try:
            engine.start()
        except EngineStartupError as exc:
            self._engine_unavailable(exc)

    def _teardown_engine(self) -> None:
        self._set_pending(None)
        engine, self._engine = self._engine, None
        self._engine_available = False
        if engine is not None:
            engine.shutdown()

    def _engine_unavailable(self, error: EngineStartupError, *, force: bool = False) -> None:
        """Mark the engine unusable until the next game; report only once."""
        self._set_pending(None)
        if not self._engine_available and not force:
            return
        self._engine_available = False
        self._report(error)
        if self._phase == ControllerPhase.AWAITING_ENGINE:
            self._set_phase(ControllerPhase.WAITING_FOR_INPUT)

    def _on_engine_error(
        self,
        generation: int,
        request_id: int | None,
        error: SessionError,
    ) -> None:
        if generation != self._generation:
            return
        if isinstance(error, EngineStartupError):
            self._engine_unavailable(error)
            return
        if request_id is None or not self._is_current(generation, request_id, self.position):
            _LOGGER.debug("Ignoring engine error for stale request %s: %s", request_id, error)
            return
        self._set_pending(None)
        self._report(error)
        self._set_phase(ControllerPhase.WAITING_FOR_INPUT)

    def _is_current(self, generation: int, request_id: int, fen: str) -> bool:
        pending = self._pending
        return (
            generation == self._generation
            and self._phase == ControllerPhase.AWAITING_ENGINE
            and pending is not None
            and pending.request_id == request_id
            and pending.fen == fen == self._session.position
        )

    def _cancel_engine_request(self) -> None:
        if self._pending is None:
            return
        self._set_pending(None)
        if self._engine is not None:
            self._engine.cancel()

    def _commit(self, session: Session, record: MoveRecord) -> None:
        self._session = session
        self._persist()
        self._emit_move(record)
        self._advance()

    def _advance(self) -> None:
        """Pick the phase that follows the current session state."""
        if self._session.outcome.is_resolved:
            self._set_phase(ControllerPhase.GAME_OVER)
        elif self._session.is_engine_turn() and self._engine_available:
            self._set_phase(ControllerPhase.AWAITING_ENGINE)
            self.request_engine_move()
        else:
            self._set_phase(ControllerPhase.WAITING_FOR_INPUT)

    def _plies_to_retract(self) -> int:
        n = self._session.ply_count
        if n == 0:
            return 0
        if self._session.opponent_mode == OpponentMode.HUMAN:
            return 1
        if self._session.is_engine_turn():
            return 1
        return 2 if n >= 2 else 0

    def _persist(self) -> None:
        try:
            self._repository.save(self._session)
        except PersistenceError as exc:
            self._report(exc)

    def _clear_storage(self) -> None:
        try:
            self._repository.clear()
        except PersistenceError as exc:
            self._report(exc)

    def _reject(self, error: InvalidMoveError) -> bool:
        self._report(error)
        return False

    def _report(self, error: SessionError) -> None:
        self._last_error = error
        if isinstance(error, EngineStartupError):
            _LOGGER.error("%s", error)
        elif isinstance(error, InvalidMoveError):
            _LOGGER.info("Move rejected: %s", error)
        else:
            _LOGGER.warning("%s: %s", type(error).__name__, error)
        for cb in list(self.events.on_error):
            cb(error)

    def _set_pending(self, request: EngineRequest | None) -> None:
        was_thinking = self._pending is not None
        self._pending = request
        if was_thinking != (request is not None):
            for cb in list(self.events.on_thinking_changed):
                cb(request is not None)

    def _set_phase(self, phase: ControllerPhase) -> None:
        if phase == self._phase:
            return
        self._phase = phase
        for cb in list(self.events.on_phase_changed):
            cb(phase)
        if phase == ControllerPhase.GAME_OVER:
            for cb in list(self.events.on_game_over):
                cb(self._session.outcome)

    def _emit_move(self, record: MoveRecord) -> None:
        for cb in list(self.events.on_move):
            cb(record, self._session)

    def _emit_position_changed(self) -> None:
        for cb in list(self.events.on_position_changed):
            cb(self._session)
