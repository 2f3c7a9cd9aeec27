"""
Defines the data structures describing live R sessions.

These Pydantic models carry the launch parameters of a session and the
read-only rows produced when the registry is enumerated for status commands.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from config import R_COMMAND, R_DISPLAY_HEIGHT, R_DISPLAY_WIDTH


class SessionStatus(str, Enum):
    """Liveness of a session's process."""
    STARTING = "starting"
    RUNNING = "running"
    DEAD = "dead"


class SessionConfig(BaseModel):
    """Startup parameters used whenever the registry spawns a session."""

    # The command line that starts an interactive R process.
    command: list[str] = Field(default_factory=lambda: list(R_COMMAND))
    # Working directory of the process; None inherits the server's.
    cwd: Optional[str] = None
    # Extra environment variables layered over the server's environment.
    env: dict[str, str] = Field(default_factory=dict)
    # Console geometry, applied through options() right after startup.
    width: int = Field(default=R_DISPLAY_WIDTH, gt=0)
    height: int = Field(default=R_DISPLAY_HEIGHT, gt=0)
    # Directory for scratch artifacts, signal files and transcripts.
    scratch_dir: Optional[str] = None


class SessionInfo(BaseModel):
    """One row of the registry listing."""
    # The context key bound to the session, or None for an unbound session.
    context_key: Optional[str] = None
    session_label: str
    status: SessionStatus
    pid: Optional[int] = None
    created_at: datetime
