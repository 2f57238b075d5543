"""Engine package: wire protocol, request lifecycle and Qt process bridge."""

from __future__ import annotations

from gambit.engine.client import EngineClient, EngineEvents
from gambit.engine.protocol import EngineReply, EngineRequest, parse_bestmove
from gambit.engine.qt_bridge import QProcessTransport
from gambit.settings import SessionSettings


def create_engine_client(settings: SessionSettings) -> EngineClient:
    """Build a client that talks to ``settings.engine_path`` over a pipe."""
    transport = QProcessTransport(settings.engine_path, settings.engine_args)
    client = EngineClient(transport, timeout_ms=settings.engine_timeout_ms, parent=transport)
    return client


__all__ = [
    "EngineClient",
    "EngineEvents",
    "EngineReply",
    "EngineRequest",
    "QProcessTransport",
    "create_engine_client",
    "parse_bestmove",
]
