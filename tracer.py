import functools
import inspect
import os
import re
import time

from config import TRACE_MAX_ENTRIES

def _sanitize_repr(value, limit=200):
    """
    Cleans the string representation of an object by removing memory addresses
    and truncating very long values such as whole document buffers.
    """
    rep = repr(value)
    rep = re.sub(r'\s+at\s+0x[0-9a-fA-F]+', '', rep)
    if len(rep) > limit:
        rep = rep[:limit] + "...>"
    return rep

def _prune(entries):
    """
    Recursively drops empty 'nested_calls' lists so the exported log only
    carries branches that actually contain something.
    """
    pruned = []
    for entry in entries:
        if isinstance(entry, dict) and "nested_calls" in entry:
            entry["nested_calls"] = _prune(entry["nested_calls"])
            if not entry["nested_calls"]:
                del entry["nested_calls"]
        pruned.append(entry)
    return pruned


class Tracer:
    """
    Records the execution flow of decorated functions as a nested structure
    that mirrors the call stack. Each submission request from the editor
    produces one top-level entry, which makes it easy to see which boundary
    rule fired and which session received the unit.
    """
    def __init__(self):
        self.reset()

    def reset(self):
        """Clears the current trace log and resets the call stack."""
        self.trace_log = []
        self.call_stack = []

    def _attach(self, entry):
        if self.call_stack:
            self.call_stack[-1]["nested_calls"].append(entry)
        else:
            self.trace_log.append(entry)
            del self.trace_log[:-TRACE_MAX_ENTRIES]

    def start_trace(self, module, func_name):
        """Opens a trace entry for a function call and pushes it on the stack."""
        entry = {
            "function": f"{module}.{func_name}",
            "nested_calls": [],
            "_started": time.perf_counter(),
        }
        self._attach(entry)
        self.call_stack.append(entry)

    def end_trace(self, return_value, is_exception=False):
        """Closes the innermost trace entry, recording its outcome and duration."""
        if not self.call_stack:
            return

        entry = self.call_stack.pop()
        started = entry.pop("_started", None)
        if started is not None:
            entry["elapsed_ms"] = round((time.perf_counter() - started) * 1000, 3)

        if is_exception:
            entry["exception"] = _sanitize_repr(return_value)
        elif return_value is not None:
            if not (isinstance(return_value, (list, dict, tuple, str)) and not return_value):
                entry["return_value"] = _sanitize_repr(return_value)

    def get_trace(self):
        """Returns the completed trace log with empty branches removed."""
        return _prune(self.trace_log)

# Global instance of the tracer
global_tracer = Tracer()

def log_event(event_name: str, details: dict | None = None):
    """
    Manually records a named event (e.g. a session being reaped) in the
    current position of the trace tree.
    """
    caller_frame = inspect.stack()[1]
    module_name = os.path.splitext(os.path.basename(caller_frame.filename))[0]

    event_entry = {"type": "EVENT", "event_name": f"{module_name}.{event_name}"}
    if details:
        event_entry["details"] = {key: _sanitize_repr(value) for key, value in details.items()}
    global_tracer._attach(event_entry)

def trace(func):
    """
    A decorator that logs the entry and exit of a function call
    to the global_tracer in a nested format.
    """
    if func.__module__ == 'tracer':
        return func

    module_name = os.path.splitext(os.path.basename(inspect.getfile(func)))[0]

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        global_tracer.start_trace(module_name, func.__qualname__)
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            global_tracer.end_trace(e, is_exception=True)
            raise
        global_tracer.end_trace(result)
        return result

    return wrapper
