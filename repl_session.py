"""
Provides a local stand-in for one live R process.

A ReplSession owns the child process, its stdin channel and its transcript
file, and re-checks liveness every time it is asked, so a session recorded as
running that has in fact exited is noticed at the moment of use.
"""
import logging
import os
import subprocess
from datetime import datetime
from typing import Optional

from config import SCRATCH_DIR
from errors import SessionCreationFailed, SessionUnavailable
from session_models import SessionConfig, SessionInfo, SessionStatus
from tracer import trace


class ReplSession:
    """
    Wraps an interactive R process started with a piped stdin. Output goes to
    a per-session transcript file next to the scratch artifacts.
    """
    @trace
    def __init__(self, label: str, config: Optional[SessionConfig] = None):
        """
        Prepares (but does not start) a session.

        Args:
            label: The unique, human-legible name of the session.
            config: Launch parameters; defaults come from config.py.
        """
        self.label = label
        self.config = config or SessionConfig()
        self.process: Optional[subprocess.Popen] = None
        self.status = SessionStatus.STARTING
        self.created_at = datetime.now()
        # Cleared by the dispatcher after the first delivery.
        self.fresh = True
        self.scratch_dir = self.config.scratch_dir or SCRATCH_DIR
        self.signal_path = os.path.join(self.scratch_dir, f"{label}.signal")
        self.transcript_path = os.path.join(self.scratch_dir, f"{label}.log")
        self._transcript = None

    @trace
    def start(self) -> "ReplSession":
        """
        Spawns the R process and applies the display geometry.

        Raises:
            SessionCreationFailed: The command could not be executed.
        """
        os.makedirs(self.scratch_dir, exist_ok=True)
        env = os.environ.copy()
        env.update(self.config.env)
        env["RELAY_SIGNAL_FILE"] = self.signal_path
        env["COLUMNS"] = str(self.config.width)
        env["LINES"] = str(self.config.height)

        self._transcript = open(self.transcript_path, "a", encoding="utf-8")
        try:
            self.process = subprocess.Popen(
                self.config.command,
                stdin=subprocess.PIPE,
                stdout=self._transcript,
                stderr=subprocess.STDOUT,
                cwd=self.config.cwd,
                env=env,
                text=True,
                bufsize=1,
            )
        except OSError as e:
            self._transcript.close()
            self.status = SessionStatus.DEAD
            logging.error(f"Could not spawn session '{self.label}' with {self.config.command}: {e}")
            raise SessionCreationFailed(f"{self.config.command[0]}: {e}") from e

        if not self.is_alive():
            self.terminate()
            raise SessionCreationFailed(f"'{self.label}' exited during startup")
        self.status = SessionStatus.RUNNING
        logging.info(f"Session '{self.label}' started with pid {self.process.pid}.")
        self.send_line(f"options(width = {self.config.width})")
        return self

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @trace
    def is_alive(self) -> bool:
        """Re-checks the process; a session that has exited is marked dead."""
        if self.process is None or self.status == SessionStatus.DEAD:
            return False
        if self.process.poll() is not None:
            logging.info(f"Session '{self.label}' exited with code {self.process.returncode}.")
            self.status = SessionStatus.DEAD
            return False
        return True

    @trace
    def send_line(self, text: str) -> None:
        """
        Writes one line to the session's stdin.

        Raises:
            SessionUnavailable: The process is gone or its input is closed.
        """
        if not self.is_alive():
            raise SessionUnavailable(f"session '{self.label}' is not running")
        try:
            self.process.stdin.write(text + "\n")
            self.process.stdin.flush()
        except (BrokenPipeError, OSError, ValueError) as e:
            self.status = SessionStatus.DEAD
            logging.error(f"Write to session '{self.label}' failed: {e}")
            raise SessionUnavailable(f"session '{self.label}' closed its input") from e

    @trace
    def terminate(self, timeout: float = 2.0) -> None:
        """Stops the process if it is still running and releases its files."""
        if self.process is not None and self.process.poll() is None:
            try:
                self.process.stdin.close()
            except OSError as e:
                logging.warning(f"Could not close stdin of session '{self.label}': {e}")
            self.process.terminate()
            try:
                self.process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logging.warning(f"Session '{self.label}' ignored terminate; killing it.")
                self.process.kill()
        self.status = SessionStatus.DEAD
        if self._transcript is not None and not self._transcript.closed:
            self._transcript.close()

    def describe(self, context_key: Optional[str] = None) -> SessionInfo:
        """Builds a listing row with freshly re-checked liveness."""
        self.is_alive()
        return SessionInfo(
            context_key=context_key,
            session_label=self.label,
            status=self.status,
            pid=self.pid,
            created_at=self.created_at,
        )
