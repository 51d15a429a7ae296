"""Normalized directory errors.

Every failure that crosses the `LDAPConnection` boundary is turned into one of
the classes below. They are exceptions so callers can use `isinstance` checks
and `str(err)`, but the core never raises them: they travel as values inside
`OpResult.error` and `OperationLog.errors`.
"""

from __future__ import annotations

from typing import Any

# RFC 4511 result codes used for classification.
NO_SUCH_ATTRIBUTE = 16
CONSTRAINT_VIOLATION = 19
ATTRIBUTE_OR_VALUE_EXISTS = 20
INVALID_ATTRIBUTE_SYNTAX = 21
NO_SUCH_OBJECT = 32
INAPPROPRIATE_AUTHENTICATION = 48
INVALID_CREDENTIALS = 49
INSUFFICIENT_ACCESS_RIGHTS = 50
BUSY = 51
UNAVAILABLE = 52
OBJECT_CLASS_VIOLATION = 65
NOT_ALLOWED_ON_RDN = 67
ENTRY_ALREADY_EXISTS = 68
OBJECT_CLASS_MODS_PROHIBITED = 69

# Client-side codes (LDAP C API), never sent by a server.
SERVER_DOWN = 81
NO_RESULT = 82
TIMEOUT = 85


class DirectoryError(Exception):
    """Base class: a protocol-level rejection with no more specific kind."""

    status_code = 400

    def __init__(self, message: str = "", *, code: int | None = None, name: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.name = name
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "name": self.name, "message": self.message}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DirectoryError):
            return NotImplemented
        return type(self) is type(other) and self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash((type(self), self.code, self.name, self.message))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, name={self.name!r}, message={self.message!r})"


class ValidationError(DirectoryError):
    """Request data rejected before any remote call."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=None, name="validationError")


class BindError(DirectoryError):
    status_code = 401


class NotFoundError(DirectoryError):
    status_code = 404


class AlreadyExistsError(DirectoryError):
    status_code = 409


class ConstraintViolation(DirectoryError):
    status_code = 409


class InsufficientAccessError(DirectoryError):
    status_code = 403


class TransportError(DirectoryError):
    """Connection-level failure, distinct from a server rejecting a request."""

    status_code = 503


class NoResultError(TransportError):
    """The server never delivered a terminal result for a request."""


_CONSTRAINT_CODES = {
    NO_SUCH_ATTRIBUTE,
    CONSTRAINT_VIOLATION,
    ATTRIBUTE_OR_VALUE_EXISTS,
    INVALID_ATTRIBUTE_SYNTAX,
    OBJECT_CLASS_VIOLATION,
    NOT_ALLOWED_ON_RDN,
    OBJECT_CLASS_MODS_PROHIBITED,
}

_BY_CODE: dict[int, type[DirectoryError]] = {
    NO_SUCH_OBJECT: NotFoundError,
    ENTRY_ALREADY_EXISTS: AlreadyExistsError,
    INSUFFICIENT_ACCESS_RIGHTS: InsufficientAccessError,
    BUSY: TransportError,
    UNAVAILABLE: TransportError,
    SERVER_DOWN: TransportError,
    TIMEOUT: TransportError,
    NO_RESULT: NoResultError,
}
_BY_CODE.update({c: ConstraintViolation for c in _CONSTRAINT_CODES})


def from_result(result: dict | None, *, operation: str = "") -> DirectoryError:
    """Build a normalized error from an ldap3 `conn.result` dict.

    A failed bind is always a `BindError`, whatever code the server chose
    (servers answer 49, 48 or 50 depending on policy). A missing result means
    the request never completed.
    """
    if not result:
        return NoResultError("no result received from server", code=NO_RESULT, name="noResult")

    code = result.get("result")
    name = str(result.get("description") or "")
    message = str(result.get("message") or "")
    if code in (BUSY, UNAVAILABLE):
        return TransportError(message, code=code, name=name)
    if operation == "bind":
        return BindError(message, code=code, name=name)
    cls = _BY_CODE.get(code, DirectoryError)
    return cls(message, code=code, name=name)


def transport_error(exc: BaseException) -> TransportError:
    """Wrap an exception raised by the protocol client (socket, TLS, ...)."""
    return TransportError(str(exc) or type(exc).__name__, code=SERVER_DOWN, name="serverDown")


def client_error(exc: BaseException) -> DirectoryError:
    """Wrap a request the protocol client refused to send (bad attribute, empty password, ...)."""
    return DirectoryError(str(exc) or type(exc).__name__, code=None, name=type(exc).__name__)


def timeout_error(seconds: float) -> TransportError:
    return TransportError(f"no response within {seconds:g}s", code=TIMEOUT, name="timeout")
