"""
Error types for the Word Stream Reader engine.
"""


class ReaderError(Exception):
    """Base class for reader engine errors."""


class SourceUnavailable(ReaderError):
    """Raised when the raw text of a source cannot be read."""

    def __init__(self, source_id: str, reason: str = ""):
        self.source_id = source_id
        self.reason = reason
        message = f"Source unavailable: {source_id}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class IndexOutOfRange(ReaderError, IndexError):
    """Raised when a global index is not covered by a window."""


class PersistenceFailure(ReaderError):
    """Raised when reading progress could not be written to storage."""
