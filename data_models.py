"""
Defines the core data structures of the bridge using Pydantic.

This module provides the validated models that flow between the editor-facing
event layer, the boundary and chunk components, and the dispatcher. Keeping
them in one place makes the request -> unit -> result data flow explicit.
"""
import os
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from config import LITERATE_EXTENSIONS
from errors import ErrorKind


class DocumentKind(str, Enum):
    """Whether a document is a plain script or a fenced literate document."""
    SCRIPT = "script"
    LITERATE = "literate"


class UnitKind(str, Enum):
    """How a submission unit was resolved."""
    SINGLE_LINE = "single_line"
    SELECTION = "selection"
    BLOCK = "block"
    PIPE_CHAIN = "pipe_chain"
    CHUNK = "chunk"
    PREVIOUS_CHUNKS = "previous_chunks"


class BridgeAction(str, Enum):
    """The closed set of actions an editor can request."""
    SEND_SMART = "send_smart"
    SEND_LINE = "send_line"
    SEND_SELECTION = "send_selection"
    SEND_CHUNK = "send_chunk"
    SEND_PREVIOUS_CHUNKS = "send_previous_chunks"
    NEXT_CHUNK = "next_chunk"
    PREVIOUS_CHUNK = "previous_chunk"
    LIST_SESSIONS = "list_sessions"
    ASSOCIATE_SESSION = "associate_session"
    CLOSE_SESSION = "close_session"


def infer_document_kind(document: str) -> DocumentKind:
    """Literate documents are recognised by their extension."""
    extension = os.path.splitext(document)[1].lower()
    return DocumentKind.LITERATE if extension in LITERATE_EXTENSIONS else DocumentKind.SCRIPT


class EditingContext(BaseModel):
    """
    One open document in the editor. The core only reads it and derives a
    lookup key from it; the editor owns the real buffer and cursor.
    """
    # The document name or path as reported by the editor.
    document: str
    kind: Optional[DocumentKind] = None
    # 1-based line of the cursor.
    cursor_line: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _fill_kind(self) -> "EditingContext":
        if self.kind is None:
            self.kind = infer_document_kind(self.document)
        return self

    @property
    def identity(self) -> str:
        """Stable identity of the document: its normalized absolute path."""
        if not self.document or self.document.startswith("["):
            # Unnamed buffers such as '[No Name]' keep their raw name.
            return self.document
        return os.path.normcase(os.path.abspath(self.document))


class Selection(BaseModel):
    """
    An explicit range chosen in the editor. Lines are 1-based and inclusive;
    columns are 0-based with an exclusive end, None meaning the whole line.
    """
    start_line: int = Field(..., ge=1)
    end_line: int = Field(..., ge=1)
    start_col: Optional[int] = Field(default=None, ge=0)
    end_col: Optional[int] = Field(default=None, ge=0)


class SubmissionUnit(BaseModel):
    """
    The resolved, ready-to-send text. Built fresh for every request and never
    modified afterwards.
    """
    model_config = ConfigDict(frozen=True)

    lines: tuple[str, ...]
    start_line: int = Field(..., ge=1)
    end_line: int = Field(..., ge=1)
    kind: UnitKind

    @model_validator(mode="after")
    def _check_range(self) -> "SubmissionUnit":
        if not self.lines:
            raise ValueError("A submission unit must contain at least one line.")
        if self.start_line > self.end_line:
            raise ValueError("A submission unit's line range must not be reversed.")
        return self

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class ChunkBoundary(BaseModel):
    """Line numbers of a located chunk. Produced per call and never stored."""
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    # Navigation results ask the editor to recenter the view.
    recenter: bool = False


class BridgeRequest(BaseModel):
    """A single request emitted by the editor plugin."""
    action: BridgeAction
    document: str = ""
    kind: Optional[DocumentKind] = None
    # The full document buffer, one entry per line.
    lines: list[str] = Field(default_factory=list)
    cursor_line: int = Field(default=1, ge=1)
    selection: Optional[Selection] = None
    # Keep the cursor in place after sending.
    stay: bool = False
    # Target session for association or close requests.
    session_label: Optional[str] = None

    def to_context(self) -> EditingContext:
        return EditingContext(document=self.document, kind=self.kind, cursor_line=self.cursor_line)


class ActionResult(BaseModel):
    """
    The standardized outcome of every editor action, so the event layer always
    receives a predictable structure regardless of which handler ran.
    """
    status: Literal["success", "error"]
    message: str
    content: Optional[Any] = None
    # Where the editor should move its cursor, if anywhere.
    cursor_line: Optional[int] = None
    recenter: bool = False
    error_kind: Optional[ErrorKind] = None


class SendReceipt(BaseModel):
    """What the dispatcher delivered, and where."""
    session_label: str
    scratch_path: str
    # The single line written to the session's input.
    command: str
    line_count: int
