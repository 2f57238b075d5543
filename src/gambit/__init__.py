"""gambit: a chess game session controller for human vs. engine play."""

__version__ = "0.1.0"
