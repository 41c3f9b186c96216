from __future__ import annotations

import errno
import logging
from collections.abc import Callable

import httpx
import pytest

from retrofit import Body, Retrofit, get, post


class UserApi:
    @get("/users/{id}")
    def get_user(self, id: int): ...

    @post("/users")
    def create_user(self, user: dict = Body()): ...


def _flaky(failures: list[BaseException | int]) -> tuple[Callable[[httpx.Request], httpx.Response], list[str]]:
    attempts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request.method)
        if failures:
            failure = failures.pop(0)
            if isinstance(failure, int):
                return httpx.Response(failure, request=request)
            raise failure
        return httpx.Response(200, json={"ok": True}, request=request)

    return handler, attempts


@pytest.mark.asyncio
async def test_retry_recovers_from_transient_socket_errors(
    make_client: Callable[..., Retrofit],
) -> None:
    handler, attempts = _flaky(
        [
            ConnectionResetError(errno.ECONNRESET, "reset"),
            ConnectionRefusedError(errno.ECONNREFUSED, "refused"),
        ]
    )
    async with make_client(handler, max_retries=3) as client:
        response = await client.create(UserApi).get_user(1)

    assert response.json() == {"ok": True}
    assert attempts == ["GET", "GET", "GET"]


@pytest.mark.asyncio
async def test_retry_honours_retryable_status_codes(make_client: Callable[..., Retrofit]) -> None:
    handler, attempts = _flaky([503, 429])
    async with make_client(handler, max_retries=2) as client:
        response = await client.create(UserApi).get_user(1)

    assert response.status_code == 200
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_retry_gives_up_after_max_retries(make_client: Callable[..., Retrofit]) -> None:
    handler, attempts = _flaky([ConnectionResetError(errno.ECONNRESET, "reset")] * 5)
    async with make_client(handler, max_retries=2) as client:
        with pytest.raises(ConnectionResetError):
            await client.create(UserApi).get_user(1)

    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_non_idempotent_requests_are_not_retried(
    make_client: Callable[..., Retrofit],
) -> None:
    handler, attempts = _flaky([ConnectionResetError(errno.ECONNRESET, "reset")])
    async with make_client(handler, max_retries=3) as client:
        with pytest.raises(ConnectionResetError):
            await client.create(UserApi).create_user({"name": "ada"})

    assert attempts == ["POST"]


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(make_client: Callable[..., Retrofit]) -> None:
    handler, attempts = _flaky([400])
    async with make_client(handler, max_retries=3) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await client.create(UserApi).get_user(1)

    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_logger_is_verbose_in_debug_mode(
    make_client: Callable[..., Retrofit],
    caplog: pytest.LogCaptureFixture,
) -> None:
    handler, _ = _flaky([])
    caplog.set_level(logging.INFO, logger="retrofit")

    async with make_client(handler, debug=True) as client:
        await client.create(UserApi).get_user(9)

    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
    assert any(m.startswith("--> GET /users/9") for m in messages)
    assert any(m.startswith("<-- 200 GET /users/9") for m in messages)


@pytest.mark.asyncio
async def test_logger_is_quiet_without_debug(
    make_client: Callable[..., Retrofit],
    caplog: pytest.LogCaptureFixture,
) -> None:
    handler, _ = _flaky([])
    caplog.set_level(logging.INFO, logger="retrofit")

    async with make_client(handler, debug=False) as client:
        await client.create(UserApi).get_user(9)

    assert not [r for r in caplog.records if r.name.startswith("retrofit")]


@pytest.mark.asyncio
async def test_logger_reports_failures_as_warnings(
    make_client: Callable[..., Retrofit],
    caplog: pytest.LogCaptureFixture,
) -> None:
    handler, _ = _flaky([ConnectionRefusedError(errno.ECONNREFUSED, "refused")])
    caplog.set_level(logging.WARNING, logger="retrofit")

    async with make_client(handler) as client:
        with pytest.raises(ConnectionRefusedError):
            await client.create(UserApi).get_user(9)

    assert any(
        r.levelno == logging.WARNING and "GET /users/9 failed" in r.getMessage()
        for r in caplog.records
    )
