"""Qt transport that runs the engine as a child process."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from PyQt6.QtCore import QObject, QProcess

from gambit.game.interfaces import FailureCallback, LineCallback

_LOGGER = logging.getLogger(__name__)


class QProcessTransport(QObject):
    """Line-oriented stdin/stdout pipe to an engine executable.

    Output is delivered on the thread that owns this object, so callbacks
    never interleave with other work on the Qt event loop.
    """

    _QUIT_WAIT_MS = 500

    def __init__(
        self,
        program: str,
        arguments: Sequence[str] = (),
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._program = program
        self._arguments = list(arguments)
        self._process = QProcess(self)
        self._process.setProcessChannelMode(QProcess.ProcessChannelMode.SeparateChannels)
        self._process.readyReadStandardOutput.connect(self._on_ready_read)
        self._process.errorOccurred.connect(self._on_error)
        self._process.finished.connect(self._on_finished)
        self._buffer = b""
        self._on_line: LineCallback | None = None
        self._on_failure: FailureCallback | None = None
        self._is_terminating = False

    @property
    def is_running(self) -> bool:
        return self._process.state() != QProcess.ProcessState.NotRunning

    def start(self, on_line: LineCallback, on_failure: FailureCallback) -> None:
        self._on_line = on_line
        self._on_failure = on_failure
        _LOGGER.info("Starting engine: %s %s", self._program, " ".join(self._arguments))
        self._process.start(self._program, self._arguments)

    def write_line(self, line: str) -> None:
        if self._is_terminating:
            return
        self._process.write(f"{line}\n".encode())

    def terminate(self) -> None:
        if self._is_terminating:
            return
        self._is_terminating = True
        self._on_line = None
        self._on_failure = None
        if not self.is_running:
            return
        self._process.write(b"quit\n")
        self._process.closeWriteChannel()
        if not self._process.waitForFinished(self._QUIT_WAIT_MS):
            _LOGGER.warning("Engine did not quit; killing pid %s", self._process.processId())
            self._process.kill()
            self._process.waitForFinished(self._QUIT_WAIT_MS)
        _LOGGER.info("Engine stopped")

    def _on_ready_read(self) -> None:
        self._buffer += bytes(self._process.readAllStandardOutput())
        *lines, self._buffer = self._buffer.split(b"\n")
        for raw in lines:
            if self._on_line is None:
                return
            self._on_line(raw.decode("utf-8", errors="replace").rstrip("\r"))

    def _on_error(self, error: QProcess.ProcessError) -> None:
        if self._is_terminating or self._on_failure is None:
            return
        if error == QProcess.ProcessError.FailedToStart:
            message = f"Failed to start engine {self._program!r}: {self._process.errorString()}"
        elif error == QProcess.ProcessError.Crashed:
            message = f"Engine {self._program!r} crashed"
        else:
            message = f"Engine I/O error: {self._process.errorString()}"
        _LOGGER.error("%s", message)
        self._on_failure(message)

    def _on_finished(self, exit_code: int, exit_status: QProcess.ExitStatus) -> None:
        # Crashes are reported through errorOccurred.
        if self._is_terminating or self._on_failure is None:
            return
        if exit_status == QProcess.ExitStatus.CrashExit:
            return
        message = f"Engine {self._program!r} exited with code {exit_code}"
        _LOGGER.error("%s", message)
        self._on_failure(message)
