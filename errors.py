"""
Defines the error vocabulary of the bridge.

Every failure that can reach the editor is one of the kinds below. Core
components raise these exceptions; the action agent catches them at the
boundary of the triggering editor action and turns them into a short,
specific notification, so nothing propagates past a single request.
"""
from enum import Enum


class ErrorKind(str, Enum):
    """The closed set of failure kinds reported to the editor."""
    NO_MATCHING_DELIMITER = "NoMatchingDelimiter"
    NO_OPENER_FOUND = "NoOpenerFound"
    EMPTY_SELECTION = "EmptySelection"
    NO_CHUNK_FOUND = "NoChunkFound"
    SESSION_UNAVAILABLE = "SessionUnavailable"
    SESSION_CREATION_FAILED = "SessionCreationFailed"


class BridgeError(RuntimeError):
    """Base class for all errors the bridge reports back to the editor."""
    kind: ErrorKind
    default_notification = "The request could not be completed."

    def __init__(self, detail: str | None = None):
        self.detail = detail
        super().__init__(detail or self.default_notification)

    @property
    def notification(self) -> str:
        """The short message shown to the user."""
        if self.detail:
            return f"{self.default_notification} ({self.detail})"
        return self.default_notification


class NoMatchingDelimiter(BridgeError):
    kind = ErrorKind.NO_MATCHING_DELIMITER
    default_notification = "No matching closing delimiter found."


class NoOpenerFound(BridgeError):
    kind = ErrorKind.NO_OPENER_FOUND
    default_notification = "No opening delimiter found near the cursor."


class EmptySelection(BridgeError):
    kind = ErrorKind.EMPTY_SELECTION
    default_notification = "The selection is empty."


class NoChunkFound(BridgeError):
    kind = ErrorKind.NO_CHUNK_FOUND
    default_notification = "No chunk found."


class SessionUnavailable(BridgeError):
    kind = ErrorKind.SESSION_UNAVAILABLE
    default_notification = "The R session is not accepting input."


class SessionCreationFailed(BridgeError):
    kind = ErrorKind.SESSION_CREATION_FAILED
    default_notification = "Could not start an R session."
