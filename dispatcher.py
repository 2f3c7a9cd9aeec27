"""
Delivers submission units to R sessions.

Multi-line code is never typed into the console line by line. Every unit is
written to its own scratch `.R` file and the session receives exactly one
line, a `source(..., echo = TRUE)` call, so R echoes the code and its output
as if it had been typed, with no bracketed-paste or continuation-prompt
ambiguity.
"""
import glob
import logging
import os
import tempfile
from typing import Optional

import eventlet

from audit_logger import audit_log
from boundary_detector import next_cursor_line
from config import SCRATCH_DIR, SCRATCH_FILE_PREFIX, SOURCE_COMMAND_TEMPLATE, STARTUP_DELAY_SECONDS
from data_models import ActionResult, EditingContext, SendReceipt, SubmissionUnit
from errors import SessionUnavailable
from repl_session import ReplSession
from session_registry import SessionRegistry
from tracer import log_event, trace
from utils import escape_r_string


class Dispatcher:
    """Writes scratch files and hands them to sessions resolved by the registry."""

    def __init__(
        self,
        registry: SessionRegistry,
        scratch_dir: Optional[str] = None,
        command_template: str = SOURCE_COMMAND_TEMPLATE,
        startup_delay: float = STARTUP_DELAY_SECONDS,
    ):
        self.registry = registry
        self.scratch_dir = scratch_dir or SCRATCH_DIR
        self.command_template = command_template
        self.startup_delay = startup_delay

    @trace
    def _write_scratch(self, unit: SubmissionUnit) -> str:
        """Writes the unit's lines to a new, uniquely named scratch file."""
        os.makedirs(self.scratch_dir, exist_ok=True)
        fd, path = tempfile.mkstemp(prefix=SCRATCH_FILE_PREFIX, suffix=".R", dir=self.scratch_dir)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(unit.text + "\n")
        return path

    @trace
    def send(self, session: ReplSession, unit: SubmissionUnit) -> SendReceipt:
        """
        Delivers one unit to a session.

        Raises:
            SessionUnavailable: The session is gone or refused the write. The
                registry has already forgotten it when this is raised.
        """
        if not session.is_alive():
            self._drop(session, "not running")
            raise SessionUnavailable(f"session '{session.label}' is not running")

        path = self._write_scratch(unit)
        command = self.command_template.format(path=escape_r_string(path))
        try:
            session.send_line(command)
        except SessionUnavailable:
            self._drop(session, "write failed")
            raise

        if session.fresh:
            # R needs a moment to come up before the echo is readable.
            eventlet.sleep(self.startup_delay)
            session.fresh = False

        log_event("unit_sent", {"session": session.label, "kind": unit.kind.value, "path": path})
        logging.info(f"Sent {len(unit.lines)} line(s) [{unit.kind.value}] to session '{session.label}'.")
        return SendReceipt(session_label=session.label, scratch_path=path, command=command, line_count=len(unit.lines))

    def _drop(self, session: ReplSession, reason: str) -> None:
        logging.warning(f"Delivery to session '{session.label}' failed ({reason}); forgetting it.")
        audit_log.log_event("Delivery Failed", session_label=session.label, details={"reason": reason})
        self.registry.on_session_closed(session)

    @trace
    def submit(self, context: EditingContext, unit: SubmissionUnit, lines: list[str], stay: bool = False) -> ActionResult:
        """
        Resolves the context's session, sends the unit and works out where the
        editor cursor goes next.
        """
        session = self.registry.resolve(context)
        receipt = self.send(session, unit)
        cursor = None if stay else next_cursor_line(lines, unit)
        audit_log.log_event(
            "Unit Sent",
            context_key=self.registry.key_strategy(context),
            session_label=receipt.session_label,
            details={"kind": unit.kind.value, "start": unit.start_line, "end": unit.end_line},
        )
        return ActionResult(
            status="success",
            message=f"Sent {unit.kind.value.replace('_', ' ')} (lines {unit.start_line}-{unit.end_line}) to {receipt.session_label}.",
            content=receipt.model_dump(),
            cursor_line=cursor,
        )

    @trace
    def cleanup(self) -> int:
        """Removes scratch files left by earlier submissions."""
        removed = 0
        for path in glob.glob(os.path.join(self.scratch_dir, f"{SCRATCH_FILE_PREFIX}*.R")):
            try:
                os.remove(path)
                removed += 1
            except OSError as e:
                logging.warning(f"Could not remove scratch file {path}: {e}")
        return removed
