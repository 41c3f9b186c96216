"""
Exception hierarchy for retrofit.

Two families live here:

- Classified transport failures (`TransportIOError` and its subclasses). These are
  produced by `retrofit.classifier` and handed to a client's error handler. They
  describe *why* a call failed; the awaitable returned to the caller still fails
  with the raw exception raised by the transport.
- Programming errors (`IllegalStateError`, `IllegalArgumentError`,
  `MetadataNotFoundError`). These are raised immediately at the call or
  registration site and are never retried.
"""

from __future__ import annotations


class RetrofitError(Exception):
    """Base class for every error raised or reported by retrofit."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Classified transport failures
# =============================================================================


class TransportIOError(RetrofitError):
    """Generic I/O failure; fallback when no more specific class applies."""


class ConnectError(TransportIOError):
    """The remote host refused the connection (ECONNREFUSED)."""


class SocketError(TransportIOError):
    """The connection was reset by the peer (ECONNRESET)."""


class RequestTimeoutError(TransportIOError):
    """The request timed out or the connection was aborted."""


class RequestCancelledError(TransportIOError):
    """The caller cancelled the request."""


# =============================================================================
# Programming errors
# =============================================================================


class IllegalStateError(RetrofitError, RuntimeError):
    """An object was used in a state that does not allow the operation."""


class IllegalArgumentError(RetrofitError, ValueError):
    """An argument violates a registration contract (e.g. interceptor order)."""


class MetadataNotFoundError(RetrofitError, LookupError):
    """A method was called on a generated instance without request metadata."""

    def __init__(self, message: str, *, owner: type | None = None, name: str | None = None):
        super().__init__(message)
        self.owner = owner
        self.name = name
