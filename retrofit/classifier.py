"""
Failure classification.

Maps the raw exception a call failed with to one of the typed errors in
`retrofit.exceptions`. Classification is advisory: the result is reported to the
client's error handler, and the caller still receives the raw exception.

Rules are evaluated in order and the first non-None result wins. The rule list is
process-wide; extend it with `add_rule()` before any client is used.
"""

from __future__ import annotations

import errno
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeAlias

import httpx

from .exceptions import (
    ConnectError,
    RequestCancelledError,
    RequestTimeoutError,
    RetrofitError,
    SocketError,
    TransportIOError,
)

if TYPE_CHECKING:
    from .request import Request

ExceptionRule: TypeAlias = Callable[["Request", Any], "RetrofitError | None"]

_MAX_CHAIN_DEPTH = 16


def _own_code(reason: Any) -> str | None:
    if isinstance(reason, Mapping):
        code = reason.get("code")
        return code if isinstance(code, str) else None
    code = getattr(reason, "code", None)
    if isinstance(code, str):
        return code
    if isinstance(reason, (TimeoutError, httpx.TimeoutException)):
        return "ETIMEDOUT"
    if isinstance(reason, OSError) and reason.errno is not None:
        return errno.errorcode.get(reason.errno)
    return None


def error_code(reason: Any) -> str | None:
    """
    Symbolic transport error code (e.g. "ECONNREFUSED") carried by `reason`.

    httpx wraps socket errors, so the `__cause__`/`__context__` chain is searched
    as well.
    """
    seen: set[int] = set()
    current = reason
    while current is not None and id(current) not in seen and len(seen) < _MAX_CHAIN_DEPTH:
        seen.add(id(current))
        code = _own_code(current)
        if code is not None:
            return code
        if not isinstance(current, BaseException):
            return None
        current = current.__cause__ or current.__context__
    return None


def error_message(reason: Any) -> str:
    if isinstance(reason, Mapping):
        return str(reason.get("message", ""))
    return str(reason)


def _cancelled(request: Request, reason: Any) -> RetrofitError | None:
    if error_code(reason) is None and request.is_cancel():
        return RequestCancelledError(error_message(reason) or (request.cancel_message or ""))
    return None


def _refused(request: Request, reason: Any) -> RetrofitError | None:
    if error_code(reason) == "ECONNREFUSED":
        return ConnectError(error_message(reason))
    return None


def _reset(request: Request, reason: Any) -> RetrofitError | None:
    if error_code(reason) == "ECONNRESET":
        return SocketError(error_message(reason))
    return None


def _timed_out(request: Request, reason: Any) -> RetrofitError | None:
    if error_code(reason) in ("ECONNABORTED", "ETIMEDOUT"):
        return RequestTimeoutError(error_message(reason))
    return None


_rules: list[ExceptionRule] = [_cancelled, _refused, _reset, _timed_out]


def add_rule(rule: ExceptionRule) -> None:
    """Append a rule; it runs after the built-in rules."""
    _rules.append(rule)


def classify(request: Request, reason: Any) -> RetrofitError | None:
    if isinstance(reason, RetrofitError):
        return reason
    if reason is None:
        return None

    for rule in _rules:
        exception = rule(request, reason)
        if exception is not None:
            return exception

    return TransportIOError(error_message(reason))
