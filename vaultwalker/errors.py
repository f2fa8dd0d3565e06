"""Error hierarchy shared by the store client, tree model, and UI.

Every exception carries an ``ErrorKind`` tag so the state machine can turn
failures into status messages without inspecting exception types.
"""

from __future__ import annotations

import enum


class ErrorKind(enum.Enum):
    NOT_FOUND = "not found"
    ALREADY_EXISTS = "already exists"
    PERMISSION_DENIED = "permission denied"
    UNREACHABLE = "unreachable"
    CANCELLED = "cancelled"
    INVALID_INPUT = "invalid input"
    MUTATION_IN_FLIGHT = "busy"
    CLIPBOARD = "clipboard"
    OTHER = "error"


class VaultwalkerError(Exception):
    """Base error with a kind tag and an optional store path for context."""

    kind = ErrorKind.OTHER

    def __init__(self, message: str = "", *, path: str | None = None) -> None:
        self.message = message or self.kind.value
        self.path = path
        super().__init__(self.message)

    def status_text(self) -> str:
        """Short one-line description for the status row."""
        parts = [self.kind.value]
        if self.path:
            parts.append(self.path)
        if self.message != self.kind.value:
            parts.append(self.message)
        return ": ".join(parts)


class RemoteError(VaultwalkerError):
    """Failure reported by (or while reaching) the remote secret store."""


class NotFound(RemoteError):
    kind = ErrorKind.NOT_FOUND


class PermissionDenied(RemoteError):
    kind = ErrorKind.PERMISSION_DENIED


class Unreachable(RemoteError):
    kind = ErrorKind.UNREACHABLE


class RemoteFailure(RemoteError):
    kind = ErrorKind.OTHER


class AlreadyExists(VaultwalkerError):
    kind = ErrorKind.ALREADY_EXISTS


class InvalidInput(VaultwalkerError):
    kind = ErrorKind.INVALID_INPUT


class MutationInFlight(VaultwalkerError):
    kind = ErrorKind.MUTATION_IN_FLIGHT

    def __init__(self, message: str = "another change is still being saved", **kwargs) -> None:
        super().__init__(message, **kwargs)


class Cancelled(VaultwalkerError):
    kind = ErrorKind.CANCELLED


class ClipboardError(VaultwalkerError):
    kind = ErrorKind.CLIPBOARD


__all__ = [
    "AlreadyExists",
    "Cancelled",
    "ClipboardError",
    "ErrorKind",
    "InvalidInput",
    "MutationInFlight",
    "NotFound",
    "PermissionDenied",
    "RemoteError",
    "RemoteFailure",
    "Unreachable",
    "VaultwalkerError",
]
