"""Database-specific exception types for the project."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlcipher3 import dbapi2 as sqlcipher

if TYPE_CHECKING:
    from .transition import TransitionStep

_TRANSIENT_MARKERS = ("locked", "busy")


class DatabaseError(Exception):
    """Base exception for database-related errors."""


class NotOpenError(DatabaseError):
    """Raised when the current handle is requested while none is open."""


class TransientLockError(DatabaseError):
    """Raised when the engine reports a busy or locked database."""


class FilesystemError(DatabaseError):
    """Raised when copying, deleting or renaming a store artifact fails."""


class TransitionFailure(DatabaseError):
    """Raised when a secret change does not commit.

    Attributes:
        step: The transition step that was running when the failure occurred.
        cause: The original underlying error.
        recovered: True if the store was returned to its pre-change state
            (old secret active, original contents).
        recovery_error: The error raised by recovery itself, if any. When set,
            the backup artifact is left on disk for the next startup.
    """

    def __init__(
        self,
        step: TransitionStep,
        cause: BaseException,
        *,
        recovered: bool = True,
        recovery_error: BaseException | None = None,
    ) -> None:
        self.step = step
        self.cause = cause
        self.recovered = recovered
        self.recovery_error = recovery_error
        state = "rolled back" if recovered else "recovery failed"
        super().__init__(f"Secret change failed during {step.value} ({state}): {cause}")


def is_transient(error: BaseException) -> bool:
    """Return True if a raw engine error describes lock contention."""
    if not isinstance(error, sqlcipher.OperationalError):
        return False
    message = str(error).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


def from_engine_error(error: sqlcipher.Error) -> DatabaseError:
    """Map a raw SQLCipher error to a project-level DatabaseError.

    Busy/locked conditions become TransientLockError so the retry policy can
    recognise them; everything else becomes a plain DatabaseError.

    Args:
        error: Driver exception to convert.

    Returns:
        TransientLockError or DatabaseError instance with the error message.
    """
    if is_transient(error):
        return TransientLockError(str(error))
    return DatabaseError(str(error))
