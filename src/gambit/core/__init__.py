"""Core domain layer: value objects, errors and the rules engine adapter.

Chess rules themselves come from python-chess; this package only wraps
them behind FEN-in / FEN-out functions.
"""

from gambit.core.enums import Color, OpponentMode, Outcome
from gambit.core.errors import (
    CorruptedHistoryError,
    EngineProtocolError,
    EngineStartupError,
    EngineTimeoutError,
    InvalidMoveError,
    PersistenceError,
    SessionError,
)
from gambit.core.move import MoveRecord, PieceInfo
from gambit.core.notation import (
    STARTING_FEN,
    CoordinateMove,
    position_from_fen,
    position_to_fen,
)

__all__ = [
    # Enums
    "Color",
    "OpponentMode",
    "Outcome",
    # Errors
    "CorruptedHistoryError",
    "EngineProtocolError",
    "EngineStartupError",
    "EngineTimeoutError",
    "InvalidMoveError",
    "PersistenceError",
    "SessionError",
    # Values
    "CoordinateMove",
    "MoveRecord",
    "PieceInfo",
    "STARTING_FEN",
    "position_from_fen",
    "position_to_fen",
]
