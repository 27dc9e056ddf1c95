"""Structured error types for aspectql."""

from __future__ import annotations

from enum import Enum

DIRECTION_REQUIRED_MESSAGE = "Relationship direction cannot be null or UNKNOWN."


class ErrorKind(str, Enum):
    """Machine-readable error category."""

    INVALID_ARGUMENT = "invalid_argument"
    UNSUPPORTED = "unsupported"
    TIMEOUT = "timeout"
    BACKEND_FAILURE = "backend_failure"
    DECODE = "decode"


class AspectQLError(Exception):
    """Base error for all aspectql errors."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidArgumentError(AspectQLError):
    """Raised when a caller passes arguments the engine cannot act on."""

    kind = ErrorKind.INVALID_ARGUMENT


class FilterCompileError(InvalidArgumentError):
    """Raised when a filter cannot be lowered to SQL.

    Always raised before any statement reaches the database.
    """


class UnsupportedError(AspectQLError):
    """Raised for requests outside what the engine implements (e.g. multi-hop)."""

    kind = ErrorKind.UNSUPPORTED


class QueryTimeoutError(AspectQLError):
    """Raised when a query exceeds its deadline."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(f"Query exceeded its deadline of {timeout_s:g}s and was aborted")


class BackendFailureError(AspectQLError):
    """Raised when the underlying database reports an error."""

    kind = ErrorKind.BACKEND_FAILURE

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Backend failure during {operation}: {detail}")


class DecodeError(AspectQLError):
    """Raised when a stored document does not decode into its declared type."""

    kind = ErrorKind.DECODE

    def __init__(self, urn: str, column: str, detail: str) -> None:
        self.urn = urn
        self.column = column
        self.detail = detail
        super().__init__(f"Cannot decode column '{column}' for '{urn}': {detail}")
