"""Engine wire protocol: request/reply messages and line parsing.

Requests are two lines, ``position fen <FEN>`` then ``go depth <N>``.
The reply is the first line whose first token is ``bestmove``.
"""

from __future__ import annotations

from dataclasses import dataclass

from gambit.core.errors import EngineProtocolError
from gambit.core.notation import CoordinateMove

BESTMOVE = "bestmove"
NO_MOVE = "(none)"


@dataclass(slots=True, frozen=True)
class EngineRequest:
    """A single search request, tagged with a sequence number."""

    request_id: int
    fen: str
    depth: int

    def to_lines(self) -> tuple[str, str]:
        return (f"position fen {self.fen}", f"go depth {self.depth}")


@dataclass(slots=True, frozen=True)
class EngineReply:
    """Parsed best move for the request it answers."""

    request_id: int
    fen: str
    move: CoordinateMove


def is_reply_line(line: str) -> bool:
    tokens = line.split(maxsplit=1)
    return bool(tokens) and tokens[0] == BESTMOVE


def parse_bestmove(line: str) -> CoordinateMove:
    """Extract the move from a ``bestmove`` line.

    Raises:
        EngineProtocolError: If the line is malformed or reports ``(none)``.
    """
    tokens = line.split()
    if len(tokens) < 2 or tokens[0] != BESTMOVE:
        raise EngineProtocolError(f"Malformed engine reply: {line!r}")
    if tokens[1] == NO_MOVE:
        raise EngineProtocolError("Engine found no legal move")
    try:
        return CoordinateMove.parse(tokens[1])
    except ValueError as exc:
        raise EngineProtocolError(f"Unparsable engine move: {tokens[1]!r}") from exc
