"""Terminal entry point: play against the engine from a shell.

Commands are read from stdin on the Qt event loop, so engine replies and
user input are handled on the same thread.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TextIO

from PyQt6.QtCore import QCoreApplication, QSocketNotifier

from gambit.core.enums import Color, OpponentMode, Outcome
from gambit.core.errors import SessionError
from gambit.core.move import MoveRecord
from gambit.core.notation import CoordinateMove, is_square_name
from gambit.engine import create_engine_client
from gambit.game.controller import SessionController
from gambit.game.interfaces import ControllerPhase
from gambit.game.persistence import SessionRepository
from gambit.game.state import Session
from gambit.game.store import QSettingsStore
from gambit.settings import SessionSettings

_LOGGER = logging.getLogger(__name__)

HELP = """\
commands:
  e2e4 | e7e8q          play a move
  undo                  take back your last move
  new [human|engine] [white|black]
  depth N               set engine search depth
  retry                 ask the engine again after an error
  moves SQUARE          list legal destinations
  quit"""


class TerminalSession:
    """Routes text commands to a controller and prints its events."""

    def __init__(self, controller: SessionController, out: TextIO = sys.stdout) -> None:
        self._ctrl = controller
        self._out = out
        self._needs_prompt = True
        events = controller.events
        events.on_move.append(self._on_move)
        events.on_position_changed.append(self._on_position_changed)
        events.on_phase_changed.append(self._on_phase_changed)
        events.on_thinking_changed.append(self._on_thinking)
        events.on_game_over.append(self._on_game_over)
        events.on_error.append(self._on_error)

    def handle(self, line: str) -> bool:
        """Execute one command.  Returns False when the user quits."""
        parts = line.split()
        if not parts:
            return True
        cmd, args = parts[0].lower(), parts[1:]

        if cmd in ("quit", "exit"):
            return False
        if cmd == "help":
            self._print(HELP)
        elif cmd == "undo":
            if not self._ctrl.undo():
                self._print("nothing to undo")
        elif cmd == "new":
            self._new_game(args)
        elif cmd == "depth":
            if len(args) == 1 and args[0].isdigit():
                self._print(f"search depth {self._ctrl.set_search_depth(int(args[0]))}")
            else:
                self._print("usage: depth N")
        elif cmd == "retry":
            if not self._ctrl.retry_engine_move():
                self._print("nothing to retry")
        elif cmd == "moves":
            if len(args) == 1 and is_square_name(args[0]):
                dests = sorted(self._ctrl.legal_destinations(args[0]))
                self._print(" ".join(dests) or "no legal moves")
            else:
                self._print("usage: moves SQUARE")
        else:
            self._play(cmd)
        self.show_prompt()
        return True

    def _new_game(self, args: list[str]) -> None:
        mode: OpponentMode | None = None
        color: Color | None = None
        for arg in args:
            try:
                mode = OpponentMode(arg.lower())
                continue
            except ValueError:
                pass
            try:
                color = Color.parse(arg)
            except ValueError:
                self._print(f"unknown option {arg!r}")
                return
        self._ctrl.new_game(opponent_mode=mode, human_color=color)

    def _play(self, text: str) -> None:
        try:
            move = CoordinateMove.parse(text)
        except ValueError:
            self._print(f"unknown command {text!r} (type 'help')")
            return
        self._ctrl.attempt_move(move.origin, move.destination, move.promotion)

    # ── Event handlers ───────────────────────────────────────────────────

    def _on_move(self, record: MoveRecord, session: Session) -> None:
        who = "engine" if record.color == session.engine_color else str(record.color)
        self._print(f"{who}: {record.san}")
        self._needs_prompt = True

    def _on_position_changed(self, session: Session) -> None:
        self._print(f"position: {session.position}")
        self._needs_prompt = True

    def _on_thinking(self, thinking: bool) -> None:
        if thinking:
            self._print("engine is thinking...")

    def _on_game_over(self, outcome: Outcome) -> None:
        if outcome == Outcome.CHECKMATE:
            self._print(f"checkmate, {self._ctrl.winner} wins")
        else:
            self._print("draw")

    def _on_error(self, error: SessionError) -> None:
        self._print(f"error: {error}")
        self._needs_prompt = True

    def _on_phase_changed(self, phase: ControllerPhase) -> None:
        self.show_prompt()

    def show_prompt(self) -> None:
        if self._ctrl.phase != ControllerPhase.WAITING_FOR_INPUT or not self._needs_prompt:
            return
        self._needs_prompt = False
        self._print(f"{self._ctrl.turn} to move")

    def _print(self, text: str) -> None:
        print(text, file=self._out, flush=True)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="gambit", description=__doc__)
    parser.add_argument("--engine", help="engine executable (default: stockfish)")
    parser.add_argument("--store", help="INI file for saved games and settings")
    parser.add_argument("--timeout-ms", type=int, help="engine reply timeout")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def run_application(argv: list[str] | None = None) -> int:
    """Create the event loop and play until stdin closes or ``quit``."""
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QCoreApplication.instance() or QCoreApplication([sys.argv[0]])
    store = QSettingsStore(args.store)
    settings = SessionSettings.from_store(store)
    if args.engine:
        settings.engine_path = args.engine
    if args.timeout_ms:
        settings.engine_timeout_ms = args.timeout_ms

    controller = SessionController(
        SessionRepository(store, settings),
        engine_factory=lambda: create_engine_client(settings),
        settings=settings,
    )
    terminal = TerminalSession(controller)

    def on_stdin() -> None:
        line = sys.stdin.readline()
        if not line or not terminal.handle(line):
            notifier.setEnabled(False)
            app.quit()

    notifier = QSocketNotifier(sys.stdin.fileno(), QSocketNotifier.Type.Read)
    notifier.activated.connect(on_stdin)

    if controller.restore():
        _LOGGER.info("Resumed saved game")
    terminal.show_prompt()
    try:
        return app.exec()
    finally:
        controller.shutdown()


def main() -> None:
    sys.exit(run_application())


if __name__ == "__main__":
    main()
