"""Error taxonomy for the 3X-UI client.

Every failure raised inside the client derives from :class:`XUIError` and
carries an :class:`ErrorKind`. Public accessors of ``XUIClient`` never let
these escape; they wrap every call into a :class:`Result` instead.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"


class XUIError(Exception):
    """Base class for every error raised by the client.

    Attributes:
        kind: The category of the failure.
        endpoint: The panel endpoint involved, if any.
    """
    kind: ErrorKind = ErrorKind.PROTOCOL

    def __init__(self, message: str, *, endpoint: str | None = None):
        super().__init__(message)
        self.endpoint = endpoint


class TransportError(XUIError):
    """The request could not be completed (network failure, unexpected status)."""
    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, *, endpoint: str | None = None, status_code: int | None = None):
        super().__init__(message, endpoint=endpoint)
        self.status_code = status_code


class ProtocolError(XUIError):
    """HTTP 200 but the body reports ``success: false`` or has an unexpected shape."""
    kind = ErrorKind.PROTOCOL


class OperationFailedError(ProtocolError):
    """The panel understood the request and answered ``success: false``.

    Attributes:
        panel_message: The ``msg`` the panel sent along, if any.
    """

    def __init__(self, message: str, *, endpoint: str | None = None, panel_message: str = ""):
        super().__init__(message, endpoint=endpoint)
        self.panel_message = panel_message


class DBLockedError(ProtocolError):
    """Exception raised when the 3X-UI database is locked.

    The panel keeps its state in SQLite and answers with a "database is locked"
    message while another write holds it. Raised once the retry budget is spent.
    """


class AuthenticationError(XUIError):
    """Login preconditions were not met."""
    kind = ErrorKind.AUTHENTICATION


class ValidationError(XUIError):
    """Caller-level error: malformed options, or an update/delete of a client that cannot be resolved."""
    kind = ErrorKind.VALIDATION


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of one public client call.

    Attributes:
        value: The returned value, or the documented default on failure.
        error: The error that degraded the call, if any.
        missing: True when the entity was confirmed absent on the panel.
    """
    value: T
    error: Optional[XUIError] = None
    missing: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.missing

    @property
    def kind(self) -> Optional[ErrorKind]:
        if self.error is not None:
            return self.error.kind
        if self.missing:
            return ErrorKind.NOT_FOUND
        return None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: XUIError, default: T) -> "Result[T]":
        return cls(value=default, error=error)

    @classmethod
    def not_found(cls, default: T) -> "Result[T]":
        return cls(value=default, missing=True)
