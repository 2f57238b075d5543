"""Engine client: owns one engine process and its request lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from PyQt6.QtCore import QObject, QTimer

from gambit.core.errors import (
    EngineProtocolError,
    EngineStartupError,
    EngineTimeoutError,
    SessionError,
)
from gambit.engine.protocol import EngineReply, EngineRequest, is_reply_line, parse_bestmove
from gambit.game.interfaces import IEngineClient, IEngineTransport

_LOGGER = logging.getLogger(__name__)

ReplyCallback = Callable[[EngineReply], None]
ErrorCallback = Callable[[int | None, SessionError], None]  # request_id, error


@dataclass
class EngineEvents:
    """Observable callbacks. Multiple handlers per event."""

    on_reply: list[ReplyCallback] = field(default_factory=list)
    on_error: list[ErrorCallback] = field(default_factory=list)

    def clear(self) -> None:
        self.on_reply.clear()
        self.on_error.clear()


class EngineClient(IEngineClient):
    """Translates :class:`EngineRequest` objects into protocol lines.

    At most one request is on the wire.  A cancelled request stays on the
    wire until the engine answers the ``stop``; a request submitted in the
    meantime is held and sent once that stale reply has been consumed.  With
    a timeout configured, a held request expires like an active one.
    """

    __slots__ = (
        "events",
        "_transport",
        "_timeout_ms",
        "_timer",
        "_active",
        "_active_cancelled",
        "_held",
        "_is_started",
        "_is_shut_down",
        "_failed",
    )

    def __init__(
        self,
        transport: IEngineTransport,
        *,
        timeout_ms: int | None = None,
        parent: QObject | None = None,
    ) -> None:
        self.events = EngineEvents()
        self._transport = transport
        self._timeout_ms = timeout_ms

        self._timer = QTimer(parent)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)

        self._active: EngineRequest | None = None
        self._active_cancelled = False
        self._held: EngineRequest | None = None
        self._is_started = False
        self._is_shut_down = False
        self._failed = False

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def is_busy(self) -> bool:
        return self._active is not None

    @property
    def is_available(self) -> bool:
        return self._is_started and not self._failed and not self._is_shut_down

    # ── IEngineClient impl ───────────────────────────────────────────────

    def start(self) -> None:
        if self._is_started:
            return
        self._is_started = True
        self._transport.start(self._on_line, self._on_transport_failure)
        if not self._failed:
            self._transport.write_line("uci")

    def submit(self, request: EngineRequest) -> None:
        if not self.is_available:
            raise EngineStartupError("Engine is not running")
        if self._active is not None and not self._active_cancelled:
            _LOGGER.warning(
                "Request %d ignored: request %d is still in flight",
                request.request_id,
                self._active.request_id,
            )
            return
        if self._active is not None:
            self._held = request
            if self._timeout_ms:
                self._timer.start(self._timeout_ms)
            return
        self._dispatch(request)

    def cancel(self) -> None:
        self._held = None
        self._timer.stop()
        if self._active is None or self._active_cancelled:
            return
        self._active_cancelled = True
        if self.is_available:
            self._transport.write_line("stop")

    def shutdown(self) -> None:
        if self._is_shut_down:
            return
        self.cancel()
        self.events.clear()
        self._is_shut_down = True
        self._active = None
        if self._is_started:
            self._transport.terminate()

    # ── Internal helpers ─────────────────────────────────────────────────

    def _dispatch(self, request: EngineRequest) -> None:
        self._active = request
        self._active_cancelled = False
        for line in request.to_lines():
            self._transport.write_line(line)
        if self._timeout_ms:
            self._timer.start(self._timeout_ms)

    def _on_line(self, line: str) -> None:
        line = line.strip()
        if self._is_shut_down or not line:
            return
        if not is_reply_line(line):
            _LOGGER.debug("engine: %s", line)
            return

        request = self._active
        cancelled = self._active_cancelled
        self._timer.stop()
        self._active = None
        self._active_cancelled = False

        if request is None:
            _LOGGER.warning("Unsolicited engine reply: %s", line)
        elif cancelled:
            _LOGGER.debug("Dropping reply to cancelled request %d", request.request_id)
        else:
            self._deliver(request, line)

        if self._held is not None and self._active is None:
            held, self._held = self._held, None
            self._dispatch(held)

    def _deliver(self, request: EngineRequest, line: str) -> None:
        try:
            move = parse_bestmove(line)
        except EngineProtocolError as exc:
            self._emit_error(request.request_id, exc)
            return
        reply = EngineReply(request.request_id, request.fen, move)
        for cb in list(self.events.on_reply):
            cb(reply)

    def _on_timeout(self) -> None:
        held = self._held
        if held is not None:
            # The engine never answered the stop for the cancelled request.
            self._held = None
            self._emit_error(
                held.request_id,
                EngineTimeoutError(f"Engine did not answer within {self._timeout_ms} ms"),
            )
            return
        request = self._active
        if request is None or self._active_cancelled:
            return
        self.cancel()
        self._emit_error(
            request.request_id,
            EngineTimeoutError(f"Engine did not answer within {self._timeout_ms} ms"),
        )

    def _on_transport_failure(self, message: str) -> None:
        if self._is_shut_down or self._failed:
            return
        self._failed = True
        self._timer.stop()
        request_id = self._active.request_id if self._active is not None else None
        self._active = None
        self._held = None
        self._emit_error(request_id, EngineStartupError(message))

    def _emit_error(self, request_id: int | None, error: SessionError) -> None:
        for cb in list(self.events.on_error):
            cb(request_id, error)
