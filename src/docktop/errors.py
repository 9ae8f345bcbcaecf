"""
Error taxonomy for engine calls and local command rejections.

Every failure the core can recover from is one of these. Each carries a
short human readable message suitable for the status bar.
"""


class DocktopError(Exception):
    """Base class for recoverable errors surfaced as status messages."""
    label = "Error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.label)
        self.message = message or self.label

    def status_text(self) -> str:
        return f"{self.label}: {self.message}" if self.message != self.label else self.label


class EngineError(DocktopError):
    label = "Engine error"


class EngineUnreachableError(EngineError):
    label = "Engine unreachable"


class PermissionDeniedError(EngineError):
    label = "Permission denied"


class NotFoundError(EngineError):
    label = "Not found"


class ConflictError(EngineError):
    label = "Conflict"


class EngineTimeoutError(EngineUnreachableError):
    """The engine did not answer in time; handled like an unreachable engine."""
    label = "Timed out"


class BusyError(DocktopError):
    """A command is already in flight for the same resource."""
    label = "Busy"
