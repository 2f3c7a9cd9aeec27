"""
Small, stateless string helpers shared by the registry and the dispatcher.
"""
import os
import re

from tracer import trace

@trace
def sanitize_label(name: str, max_length: int = 40) -> str:
    """
    Turns a document name into a session label component: the file stem with
    runs of unsupported characters collapsed to '-', e.g. 'My Analysis.Rmd'
    becomes 'My-Analysis'.
    """
    stem = os.path.splitext(os.path.basename(name.rstrip("/\\")))[0]
    label = re.sub(r"[^A-Za-z0-9_.]+", "-", stem).strip("-.")
    return label[:max_length].rstrip("-") or "untitled"

def escape_r_string(value: str) -> str:
    """Escapes a value for use inside a double-quoted R string literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
