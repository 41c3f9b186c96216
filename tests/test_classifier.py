from __future__ import annotations

import errno

import httpx

from retrofit import (
    ConnectError,
    IllegalStateError,
    Request,
    RequestCancelledError,
    RequestTimeoutError,
    SocketError,
    TransportIOError,
    add_rule,
    classify,
)
from retrofit.classifier import error_code


def _request(*, cancelled: bool = False) -> Request:
    request = Request(method="GET", url="/users/1")
    if cancelled:
        request.cancel("stop")
    return request


def test_connection_refused_is_connect_error() -> None:
    exception = classify(_request(), {"code": "ECONNREFUSED", "message": "refused"})
    assert isinstance(exception, ConnectError)
    assert str(exception) == "refused"


def test_timed_out_and_aborted_are_timeouts() -> None:
    assert isinstance(classify(_request(), {"code": "ETIMEDOUT"}), RequestTimeoutError)
    assert isinstance(classify(_request(), {"code": "ECONNABORTED"}), RequestTimeoutError)


def test_connection_reset_is_socket_error() -> None:
    assert isinstance(classify(_request(), {"code": "ECONNRESET"}), SocketError)


def test_no_code_and_cancelled_is_cancellation() -> None:
    exception = classify(_request(cancelled=True), {"message": "aborted by caller"})
    assert isinstance(exception, RequestCancelledError)
    assert str(exception) == "aborted by caller"


def test_no_code_and_not_cancelled_is_generic_io_error() -> None:
    exception = classify(_request(), {"message": "boom"})
    assert type(exception) is TransportIOError
    assert str(exception) == "boom"


def test_error_code_wins_over_concurrent_cancellation() -> None:
    exception = classify(_request(cancelled=True), {"code": "ECONNRESET", "message": "reset"})
    assert isinstance(exception, SocketError)


def test_structured_errors_pass_through_and_none_is_none() -> None:
    error = IllegalStateError("already typed")
    assert classify(_request(), error) is error
    assert classify(_request(), None) is None


def test_os_errors_are_classified_by_errno() -> None:
    refused = ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")
    reset = ConnectionResetError(errno.ECONNRESET, "Connection reset by peer")
    assert isinstance(classify(_request(), refused), ConnectError)
    assert isinstance(classify(_request(), reset), SocketError)
    assert isinstance(classify(_request(), TimeoutError()), RequestTimeoutError)


def test_wrapped_httpx_errors_expose_the_socket_errno() -> None:
    try:
        try:
            raise ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")
        except OSError as e:
            raise httpx.ConnectError("All connection attempts failed") from e
    except httpx.ConnectError as e:
        reason = e

    assert error_code(reason) == "ECONNREFUSED"
    assert isinstance(classify(_request(), reason), ConnectError)
    assert isinstance(classify(_request(), httpx.ReadTimeout("read timed out")), RequestTimeoutError)


def test_plain_exception_message_is_kept() -> None:
    exception = classify(_request(), ValueError("bad payload"))
    assert type(exception) is TransportIOError
    assert exception.message == "bad payload"


def test_custom_rules_run_after_builtin_rules() -> None:
    class TeapotError(TransportIOError):
        pass

    add_rule(lambda request, reason: TeapotError("teapot") if "teapot" in str(reason) else None)

    assert isinstance(classify(_request(), RuntimeError("teapot")), TeapotError)
    assert isinstance(classify(_request(), {"code": "ECONNRESET", "message": "teapot"}), SocketError)
