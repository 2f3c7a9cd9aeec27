"""
Cancellable background polling tasks.

Each task runs in its own eventlet green thread and is owned by the component
that created the thing it watches, which stops it deterministically. Tasks
only read state; the liveness monitor's single permitted mutation goes
through SessionRegistry.on_session_closed.
"""
import logging
import os
from typing import Callable, Optional

import eventlet

from tracer import trace


class PollingTask:
    """Calls poll_once() every `interval` seconds until stopped."""

    def __init__(self, name: str, interval: float):
        self.name = name
        self.interval = interval
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    def poll_once(self) -> None:
        raise NotImplementedError

    def _run(self) -> None:
        while True:
            try:
                self.poll_once()
            except Exception as e:
                logging.error(f"Polling task '{self.name}' failed: {e}", exc_info=True)
            eventlet.sleep(self.interval)

    @trace
    def start(self) -> None:
        if self._thread is None:
            self._thread = eventlet.spawn(self._run)
            logging.info(f"Polling task '{self.name}' started (every {self.interval}s).")

    @trace
    def stop(self) -> None:
        if self._thread is not None:
            self._thread.kill()
            self._thread = None
            logging.info(f"Polling task '{self.name}' stopped.")


class SignalWatcher(PollingTask):
    """
    Watches a small signal file whose modification time the R session bumps
    when something happens on its side (a plot becoming ready, for example).
    The callback receives the session label and the file path.
    """
    def __init__(self, label: str, path: str, callback: Callable[[str, str], None], interval: float):
        super().__init__(f"signal:{label}", interval)
        self.label = label
        self.path = path
        self.callback = callback
        self._last_mtime = self._mtime()

    def _mtime(self) -> Optional[float]:
        try:
            return os.path.getmtime(self.path)
        except OSError:
            return None

    def poll_once(self) -> bool:
        """Fires the callback when the file appears or its mtime changes."""
        mtime = self._mtime()
        if mtime is None or mtime == self._last_mtime:
            return False
        self._last_mtime = mtime
        self.callback(self.label, self.path)
        return True


class LivenessMonitor(PollingTask):
    """Periodically asks the registry to reap sessions whose process exited."""

    def __init__(self, reap: Callable[[], list], interval: float):
        super().__init__("liveness", interval)
        self.reap = reap

    def poll_once(self) -> list:
        return self.reap()
