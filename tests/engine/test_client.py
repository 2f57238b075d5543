"""Tests for EngineClient request lifecycle."""

from __future__ import annotations

import pytest

from conftest import StubTransport
from gambit.core.errors import (
    EngineProtocolError,
    EngineStartupError,
    EngineTimeoutError,
    SessionError,
)
from gambit.core.notation import STARTING_FEN, CoordinateMove
from gambit.engine.client import EngineClient
from gambit.engine.protocol import EngineReply, EngineRequest

AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


class _Recorder:
    def __init__(self, client: EngineClient) -> None:
        self.replies: list[EngineReply] = []
        self.errors: list[tuple[int | None, SessionError]] = []
        client.events.on_reply.append(self.replies.append)
        client.events.on_error.append(lambda rid, err: self.errors.append((rid, err)))


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def client(qapp: object, transport: StubTransport) -> EngineClient:
    c = EngineClient(transport)
    c.start()
    return c


class TestLifecycle:
    def test_start_sends_handshake(self, client: EngineClient, transport: StubTransport) -> None:
        assert transport.started
        assert transport.lines == ["uci"]
        assert client.is_available

    def test_start_twice_is_noop(self, client: EngineClient, transport: StubTransport) -> None:
        client.start()
        assert transport.lines == ["uci"]

    def test_shutdown_terminates_transport(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        client.shutdown()
        assert transport.terminated
        assert not client.is_available

    def test_shutdown_before_start_does_not_terminate(
        self, qapp: object, transport: StubTransport
    ) -> None:
        c = EngineClient(transport)
        c.shutdown()
        assert not transport.terminated

    def test_startup_failure_reported(self, qapp: object) -> None:
        transport = StubTransport(fail_on_start="no such file")
        c = EngineClient(transport)
        rec = _Recorder(c)
        c.start()
        assert not c.is_available
        assert "uci" not in transport.lines
        assert len(rec.errors) == 1
        rid, err = rec.errors[0]
        assert rid is None
        assert isinstance(err, EngineStartupError)

    def test_submit_after_failure_raises(self, qapp: object) -> None:
        c = EngineClient(StubTransport(fail_on_start="boom"))
        c.start()
        with pytest.raises(EngineStartupError):
            c.submit(EngineRequest(1, STARTING_FEN, 5))


class TestRequests:
    def test_submit_writes_position_and_go(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        client.submit(EngineRequest(1, AFTER_E4, 5))
        assert transport.lines[-2:] == [f"position fen {AFTER_E4}", "go depth 5"]
        assert client.is_busy

    def test_reply_delivered_with_request_tag(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        rec = _Recorder(client)
        client.submit(EngineRequest(7, AFTER_E4, 5))
        transport.feed("info depth 5 score cp -20 pv e7e5")
        transport.feed("bestmove e7e5 ponder g1f3")
        assert rec.replies == [EngineReply(7, AFTER_E4, CoordinateMove("e7", "e5"))]
        assert not client.is_busy

    def test_chatter_is_ignored(self, client: EngineClient, transport: StubTransport) -> None:
        rec = _Recorder(client)
        transport.feed("id name Stockfish")
        transport.feed("uciok")
        transport.feed("")
        assert rec.replies == []
        assert rec.errors == []

    def test_none_reply_is_protocol_error(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        rec = _Recorder(client)
        client.submit(EngineRequest(2, AFTER_E4, 5))
        transport.feed("bestmove (none)")
        assert rec.replies == []
        assert [(rid, type(err)) for rid, err in rec.errors] == [(2, EngineProtocolError)]
        assert not client.is_busy

    def test_unsolicited_reply_dropped(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        rec = _Recorder(client)
        transport.feed("bestmove e2e4")
        assert rec.replies == []
        assert rec.errors == []

    def test_second_submit_while_busy_is_ignored(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        client.submit(EngineRequest(1, AFTER_E4, 5))
        client.submit(EngineRequest(2, AFTER_E4, 5))
        assert transport.requests == [f"position fen {AFTER_E4}", "go depth 5"]


class TestCancellation:
    def test_cancel_sends_stop_and_drops_reply(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        rec = _Recorder(client)
        client.submit(EngineRequest(1, AFTER_E4, 5))
        client.cancel()
        assert transport.lines[-1] == "stop"
        transport.feed("bestmove e7e5")
        assert rec.replies == []
        assert not client.is_busy

    def test_cancel_when_idle_sends_nothing(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        client.cancel()
        assert transport.lines == ["uci"]

    def test_request_held_until_stale_reply_arrives(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        rec = _Recorder(client)
        client.submit(EngineRequest(1, AFTER_E4, 5))
        client.cancel()
        client.submit(EngineRequest(2, STARTING_FEN, 6))
        assert transport.lines[-1] == "stop"

        transport.feed("bestmove e7e5")
        assert transport.lines[-2:] == [f"position fen {STARTING_FEN}", "go depth 6"]
        assert rec.replies == []

        transport.feed("bestmove d2d4")
        assert rec.replies == [EngineReply(2, STARTING_FEN, CoordinateMove("d2", "d4"))]

    def test_cancel_discards_held_request(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        client.submit(EngineRequest(1, AFTER_E4, 5))
        client.cancel()
        client.submit(EngineRequest(2, STARTING_FEN, 5))
        client.cancel()
        transport.feed("bestmove e7e5")
        assert transport.requests == [f"position fen {AFTER_E4}", "go depth 5"]
        assert not client.is_busy

    def test_shutdown_silences_events(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        rec = _Recorder(client)
        client.submit(EngineRequest(1, AFTER_E4, 5))
        client.shutdown()
        transport.feed("bestmove e7e5")
        assert rec.replies == []


class TestTimeout:
    def test_timeout_cancels_and_reports(self, qapp: object, transport: StubTransport) -> None:
        c = EngineClient(transport, timeout_ms=1000)
        c.start()
        rec = _Recorder(c)
        c.submit(EngineRequest(3, AFTER_E4, 5))

        c._on_timeout()

        assert transport.lines[-1] == "stop"
        assert [(rid, type(err)) for rid, err in rec.errors] == [(3, EngineTimeoutError)]
        transport.feed("bestmove e7e5")
        assert rec.replies == []

    def test_timeout_without_request_is_noop(
        self, qapp: object, transport: StubTransport
    ) -> None:
        c = EngineClient(transport, timeout_ms=1000)
        c.start()
        rec = _Recorder(c)
        c._on_timeout()
        assert rec.errors == []

    def test_reply_stops_timer(self, qapp: object, transport: StubTransport) -> None:
        c = EngineClient(transport, timeout_ms=60_000)
        c.start()
        c.submit(EngineRequest(1, AFTER_E4, 5))
        assert c._timer.isActive()
        transport.feed("bestmove e7e5")
        assert not c._timer.isActive()

    def test_held_request_times_out_when_stop_is_unanswered(
        self, qapp: object, transport: StubTransport
    ) -> None:
        c = EngineClient(transport, timeout_ms=1000)
        c.start()
        rec = _Recorder(c)
        c.submit(EngineRequest(1, AFTER_E4, 5))
        c._on_timeout()

        c.submit(EngineRequest(2, AFTER_E4, 5))
        assert c._timer.isActive()
        c._on_timeout()

        assert [(rid, type(err)) for rid, err in rec.errors] == [
            (1, EngineTimeoutError),
            (2, EngineTimeoutError),
        ]
        assert len(transport.requests) == 2
        transport.feed("bestmove e7e5")
        assert rec.replies == []
        assert len(transport.requests) == 2


class TestTransportFailure:
    def test_crash_mid_request_reports_startup_error(
        self, client: EngineClient, transport: StubTransport
    ) -> None:
        rec = _Recorder(client)
        client.submit(EngineRequest(4, AFTER_E4, 5))
        transport.fail("Engine crashed")
        transport.fail("Engine crashed")
        assert [(rid, type(err)) for rid, err in rec.errors] == [(4, EngineStartupError)]
        assert not client.is_available
        assert not client.is_busy
