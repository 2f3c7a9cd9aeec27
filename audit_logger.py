import csv
import json
import os
import threading
from datetime import datetime

from config import AUDIT_LOG_PATH


class AuditLogger:
    def __init__(self, filepath=AUDIT_LOG_PATH):
        self.filepath = filepath
        self.lock = threading.Lock()
        self._initialize_file()
        self.socketio = None

    def register_socketio(self, sio):
        """Allows the main app to register the Socket.IO instance."""
        self.socketio = sio

    def _initialize_file(self):
        """Creates the CSV file and writes the header if it doesn't exist."""
        with self.lock:
            os.makedirs(os.path.dirname(self.filepath), exist_ok=True)
            file_exists = os.path.exists(self.filepath)
            with open(self.filepath, "a", newline="", encoding="utf-8") as f:
                if not file_exists or os.path.getsize(self.filepath) == 0:
                    csv.writer(f).writerow(["Timestamp", "Event", "ContextKey", "SessionLabel", "Details"])

    def redirect(self, filepath):
        """Points the trail at another file, e.g. a temporary one in tests."""
        self.filepath = filepath
        self._initialize_file()

    def log_event(self, event, context_key=None, session_label=None, details=None):
        """
        Appends one bridge event (session created or closed, unit sent,
        delivery failed) to the CSV file and broadcasts it over Socket.IO.
        """
        row = [
            datetime.now().isoformat(),
            event,
            context_key or "N/A",
            session_label or "N/A",
            json.dumps(details) if details is not None else "",
        ]

        with self.lock:
            with open(self.filepath, "a", newline="", encoding="utf-8") as f:
                csv.writer(f, quoting=csv.QUOTE_ALL).writerow(row)

            if self.socketio:
                payload = {
                    "event": event,
                    "context_key": context_key,
                    "session_label": session_label,
                    "details": details,
                }
                self.socketio.start_background_task(self.socketio.emit, "new_audit_event", payload)


# Create a single, global instance to be used by the entire application
audit_log = AuditLogger()
