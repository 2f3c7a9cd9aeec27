"""
The Session Registry: maps editing contexts to live R sessions.

The registry is an explicit object created by the application root and passed
by reference to the dispatcher and the event handlers. It creates sessions on
demand, reuses live ones, notices dead ones lazily (at the moment of use or
when the liveness monitor reaps them) and lets a context be bound explicitly
to a session that was started out of band.
"""
import logging
from typing import Callable, List, Optional, Union

from audit_logger import audit_log
from config import LIVENESS_POLL_INTERVAL, SESSION_LABEL_PREFIX, SIGNAL_POLL_INTERVAL
from data_models import EditingContext
from errors import SessionUnavailable
from repl_session import ReplSession
from session_models import SessionConfig, SessionInfo
from tracer import log_event, trace
from utils import sanitize_label
from watchers import LivenessMonitor, SignalWatcher


@trace
def derive_session_key(context: EditingContext) -> str:
    """
    Default key strategy: a human-legible label built from the document's base
    name, e.g. 'analysis.Rmd' -> 'R-analysis'. External tooling relies on this
    naming when listing or targeting sessions.
    """
    return f"{SESSION_LABEL_PREFIX}{sanitize_label(context.document)}"


class SessionRegistry:
    """
    Holds the context-key -> session bindings and the pool of every session
    the registry knows about, keyed by label. A key maps to at most one
    session; one session may serve several keys.
    """
    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        key_strategy: Callable[[EditingContext], str] = derive_session_key,
        launcher: Callable[[str, SessionConfig], ReplSession] = ReplSession,
        on_signal: Optional[Callable[[str, str], None]] = None,
        signal_interval: float = SIGNAL_POLL_INTERVAL,
        liveness_interval: float = LIVENESS_POLL_INTERVAL,
    ):
        """
        Args:
            config: Startup parameters for every spawned session.
            key_strategy: Derives the lookup key (and default label) of a context.
            launcher: Factory building an unstarted session from (label, config).
            on_signal: Called with (label, path) when a session's signal file changes.
            signal_interval: Seconds between signal-file checks.
            liveness_interval: Seconds between liveness sweeps.
        """
        self.config = config or SessionConfig()
        self.key_strategy = key_strategy
        self.launcher = launcher
        self.on_signal = on_signal
        self.signal_interval = signal_interval
        self._bindings: dict[str, ReplSession] = {}
        self._sessions: dict[str, ReplSession] = {}
        self._watchers: dict[str, SignalWatcher] = {}
        self._monitor = LivenessMonitor(self.reap_dead, liveness_interval)

    # --- Session lifecycle helpers ---
    @trace
    def _create(self, label: str) -> ReplSession:
        """Spawns, registers and starts watching a new session."""
        session = self.launcher(label, self.config)
        session.start()
        self._sessions[label] = session
        if self.on_signal is not None:
            watcher = SignalWatcher(label, session.signal_path, self.on_signal, self.signal_interval)
            watcher.start()
            self._watchers[label] = watcher
        logging.info(f"Registry: created session '{label}'.")
        audit_log.log_event("Session Created", session_label=label, details={"pid": session.pid})
        return session

    def _lookup(self, session_ref: Union[ReplSession, str]) -> Optional[ReplSession]:
        if isinstance(session_ref, ReplSession):
            return session_ref
        return self._sessions.get(session_ref)

    # --- Public operations ---
    @trace
    def resolve(self, context: EditingContext) -> ReplSession:
        """
        Returns the live session for a context, creating one if the context has
        none or its session has died.

        Raises:
            SessionCreationFailed: A new session could not be spawned.
        """
        key = self.key_strategy(context)
        session = self._bindings.get(key)
        if session is not None:
            if session.is_alive():
                return session
            logging.info(f"Registry: session '{session.label}' bound to '{key}' is dead; recreating.")
            self.on_session_closed(session)

        # A live session already carrying this label (e.g. spawned out of band) is claimed.
        session = self._sessions.get(key)
        if session is None or not session.is_alive():
            if session is not None:
                self.on_session_closed(session)
            session = self._create(key)
        self._bindings[key] = session
        return session

    @trace
    def force_associate(self, context: EditingContext, session_ref: Union[ReplSession, str]) -> ReplSession:
        """
        Unconditionally binds a context to an existing session, given either
        the session object or its label.

        Raises:
            SessionUnavailable: No session with that label is known, or its
                process has exited.
        """
        session = self._lookup(session_ref)
        if session is None:
            raise SessionUnavailable(f"no session named '{session_ref}'")
        if not session.is_alive():
            self.on_session_closed(session)
            raise SessionUnavailable(f"session '{session.label}' is no longer running")
        self._sessions.setdefault(session.label, session)
        key = self.key_strategy(context)
        previous = self._bindings.get(key)
        self._bindings[key] = session
        logging.info(f"Registry: '{key}' force-associated with session '{session.label}'.")
        audit_log.log_event(
            "Session Associated",
            context_key=key,
            session_label=session.label,
            details={"previous": previous.label if previous else None},
        )
        return session

    @trace
    def spawn(self, label: str) -> ReplSession:
        """Starts a standalone session that no context is bound to yet."""
        existing = self._sessions.get(label)
        if existing is not None and existing.is_alive():
            return existing
        if existing is not None:
            self.on_session_closed(existing)
        return self._create(label)

    @trace
    def list(self) -> list[SessionInfo]:
        """Every binding plus every unbound session, with liveness re-checked."""
        rows = [session.describe(key) for key, session in sorted(self._bindings.items())]
        bound = {id(session) for session in self._bindings.values()}
        rows.extend(
            session.describe(None)
            for label, session in sorted(self._sessions.items())
            if id(session) not in bound
        )
        return rows

    def format_table(self) -> str:
        """Renders list() as a plain-text table for status commands."""
        rows = self.list()
        if not rows:
            return "No R sessions."
        header = ("CONTEXT", "SESSION", "STATUS", "PID")
        body = [
            (row.context_key or "-", row.session_label, row.status.value, str(row.pid or "-"))
            for row in rows
        ]
        widths = [max(len(line[i]) for line in [header, *body]) for i in range(len(header))]
        return "\n".join(
            "  ".join(cell.ljust(width) for cell, width in zip(line, widths)).rstrip()
            for line in [header, *body]
        )

    @trace
    def on_session_closed(self, session: ReplSession) -> None:
        """
        Forgets a session whose process terminated: every binding to it is
        cleared so the next resolve() recreates it, and its watcher is stopped.
        """
        stale_keys = [key for key, bound in self._bindings.items() if bound is session]
        for key in stale_keys:
            del self._bindings[key]
        if self._sessions.get(session.label) is session:
            del self._sessions[session.label]
            watcher = self._watchers.pop(session.label, None)
            if watcher is not None:
                watcher.stop()
        session.terminate()
        log_event("session_closed", {"label": session.label, "keys": stale_keys})
        logging.info(f"Registry: session '{session.label}' closed; cleared {len(stale_keys)} binding(s).")
        audit_log.log_event("Session Closed", session_label=session.label, details={"keys": stale_keys})

    @trace
    def close(self, target: Union[EditingContext, str]) -> str:
        """
        Closes a session on the user's request, by context or by label.

        Raises:
            SessionUnavailable: Nothing matches the target.
        """
        if isinstance(target, EditingContext):
            session = self._bindings.get(self.key_strategy(target))
        else:
            session = self._sessions.get(target) or self._bindings.get(target)
        if session is None:
            raise SessionUnavailable("no session to close")
        self.on_session_closed(session)
        return session.label

    @trace
    def reap_dead(self) -> List[str]:
        """Runs on_session_closed for every session whose process has exited."""
        known = {id(s): s for s in [*self._sessions.values(), *self._bindings.values()]}
        reaped = []
        for session in known.values():
            if not session.is_alive():
                self.on_session_closed(session)
                reaped.append(session.label)
        return reaped

    def start_monitoring(self) -> None:
        self._monitor.start()

    @trace
    def shutdown(self) -> None:
        """Stops the liveness monitor and every watcher, and closes all sessions."""
        self._monitor.stop()
        known = {id(s): s for s in [*self._sessions.values(), *self._bindings.values()]}
        for session in known.values():
            self.on_session_closed(session)
