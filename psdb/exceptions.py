"""Exceptions for the psdb driver.

The PEP 249 hierarchy is defined here and the gateway-specific error kinds
hang off it, so callers can catch either ``psdb.Error`` or a precise kind.
Secrets (passwords, session contents) are never included in messages.
"""

from __future__ import annotations


class Warning(Exception):  # noqa: A001  PEP 249 name
    """Important warnings, e.g. data truncation."""


class Error(Exception):
    """Base exception for all psdb errors."""


class InterfaceError(Error):
    """Raised for errors in the driver itself rather than the database."""


class DatabaseError(Error):
    """Raised for errors related to the database."""


class DataError(DatabaseError):
    """Raised when a returned value cannot be converted to its column type."""


class OperationalError(DatabaseError):
    """Raised for errors talking to the gateway (network, HTTP)."""


class IntegrityError(DatabaseError):
    """Relational integrity errors.  Never raised by the gateway protocol itself."""


class InternalError(DatabaseError):
    """Internal database errors.  Never raised by the gateway protocol itself."""


class ProgrammingError(DatabaseError):
    """Raised on misuse, e.g. operating on a closed cursor."""


class NotSupportedError(DatabaseError):
    """Raised when a DB-API capability is not offered by the gateway."""


# ---------------------------------------------------------------------------
# Gateway error kinds
# ---------------------------------------------------------------------------


class ParseError(InterfaceError):
    """Raised when a connection descriptor cannot be parsed."""


class CodecError(InterfaceError):
    """Raised when a gateway response is malformed or incomplete."""


class TransportError(OperationalError):
    """Raised when the request could not be delivered or answered."""


class QueryCancelledError(TransportError):
    """Raised when the caller's deadline expires while a request is in flight."""


class HttpStatusError(OperationalError):
    """Raised when the gateway answers with a status other than 200."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"gateway returned HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class ProtocolError(DatabaseError):
    """Raised when the gateway reports an error in the response envelope."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnknownProtocolError(ProtocolError):
    """Raised when the gateway reports an error without a message."""

    def __init__(self) -> None:
        super().__init__("unknown error")


class UnsupportedOperationError(NotSupportedError):
    """Raised by prepare/begin/rollback, which the gateway driver does not offer."""
