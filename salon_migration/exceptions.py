"""Exceptions raised by the import pipeline."""

from typing import List, Optional


class MigrationError(Exception):
    """Base class for import pipeline errors."""


class ParseError(MigrationError):
    """A source file could not be decoded or parsed."""

    def __init__(self, filename: str, message: str):
        self.filename = filename
        super().__init__(f"{filename}: {message}")


class PreflightError(MigrationError):
    """The session was aborted before any storage call was made."""


class ImportBlockedError(MigrationError):
    """Validation reported critical findings and the import was not forced."""

    def __init__(self, total_criticos: int, messages: Optional[List[str]] = None):
        self.total_criticos = total_criticos
        self.messages = messages or []
        super().__init__(
            f"Import blocked by {total_criticos} critical validation finding(s)"
        )


class SessionStateError(MigrationError):
    """An operation was attempted in a session state that does not allow it."""

    def __init__(self, operation: str, status: str):
        self.operation = operation
        self.status = status
        super().__init__(f"Cannot {operation} while session is '{status}'")


class StorageError(MigrationError):
    """A storage call failed where the caller needs a value back."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)
