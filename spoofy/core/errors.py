"""Error model shared by codecs, backends and controllers."""

from collections.abc import Iterable
from enum import StrEnum


class ErrorKind(StrEnum):
    """Closed set of failure categories."""

    VALIDATION = "validation"
    PERMISSION = "permission"
    NETWORK = "network"
    PLATFORM = "platform"
    PARSE = "parse"


class SpoofyError(Exception):
    """Base error carrying a category and ordered, actionable suggestions."""

    kind: ErrorKind = ErrorKind.NETWORK

    def __init__(self, message: str, suggestions: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.suggestions: list[str] = list(suggestions)

    @property
    def code(self) -> str:
        return f"{self.kind.name}_ERROR"

    def to_dict(self) -> dict[str, object]:
        return {
            "success": False,
            "error": self.message,
            "code": self.code,
            "suggestions": self.suggestions,
        }


class ValidationError(SpoofyError):
    """Malformed or forbidden identifier value. Never retried."""

    kind = ErrorKind.VALIDATION


class PermissionDeniedError(SpoofyError):
    """The backend lacks the privilege to change the identifier."""

    kind = ErrorKind.PERMISSION


class BackendError(SpoofyError):
    """Transient backend failure."""

    kind = ErrorKind.NETWORK


class BackendTimeoutError(BackendError):
    """A backend call did not complete within its timeout."""


class IdentifierNotFoundError(BackendError):
    """The target interface or identifier does not exist."""


class VerificationError(BackendError):
    """The identifier read back after a write never matched the desired value."""

    def __init__(self, expected: str, actual: str | None, suggestions: Iterable[str] = ()) -> None:
        super().__init__(
            f"Identifier change verification failed. Expected {expected}, but got {actual or 'nothing'}",
            suggestions,
        )
        self.expected = expected
        self.actual = actual


class PlatformError(SpoofyError):
    """Missing or unsupported backend tooling."""

    kind = ErrorKind.PLATFORM


class ParseError(SpoofyError):
    """Malformed DUID bytes or hex string."""

    kind = ErrorKind.PARSE
