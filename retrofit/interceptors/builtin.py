"""
Built-in interceptors installed on every client.

- `RetryRequestInterceptor` (order 1): retries idempotent requests on transient
  failures.
- `LoggerInterceptor` (order 2): logs every attempt.
- `RealCall` (order 255): sends the request through the httpx engine.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

import httpx

from ..classifier import classify
from ..exceptions import ConnectError, IllegalStateError, RequestTimeoutError, SocketError
from .chain import LOGGER_ORDER, REAL_CALL_ORDER, RETRY_ORDER, Chain, Interceptor

if TYPE_CHECKING:
    from ..config import RetrofitConfig
    from ..request import Request

logger = logging.getLogger(__name__)

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})
_RETRYABLE_ERRORS = (ConnectError, SocketError, RequestTimeoutError)


class RealCall(Interceptor):
    """Terminal stage: performs the transport call."""

    order = REAL_CALL_ORDER

    def __init__(self, engine: httpx.AsyncClient | None = None):
        self._engine = engine

    def bind(self, engine: httpx.AsyncClient) -> None:
        self._engine = engine

    async def intercept(self, request: Request, next: Chain) -> httpx.Response:
        if self._engine is None:
            raise IllegalStateError("RealCall is not bound to an engine")
        if request.is_cancel():
            raise asyncio.CancelledError(request.cancel_message or "")
        response = await self._engine.send(request.to_httpx(self._engine))
        response.raise_for_status()
        return response


class RetryRequestInterceptor(Interceptor):
    order = RETRY_ORDER

    def __init__(self) -> None:
        self._max_retries = 0
        self._backoff = 0.0

    def init(self, config: RetrofitConfig) -> None:
        self._max_retries = config.max_retries
        self._backoff = config.retry_backoff

    def _should_retry(self, request: Request, error: Exception) -> bool:
        if request.is_cancel() or request.method not in IDEMPOTENT_METHODS:
            return False
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code in RETRYABLE_STATUS_CODES
        return isinstance(classify(request, error), _RETRYABLE_ERRORS)

    async def intercept(self, request: Request, next: Chain) -> httpx.Response:
        attempt = 0
        while True:
            try:
                return await next(request)
            except Exception as e:
                if attempt >= self._max_retries or not self._should_retry(request, e):
                    raise
                delay = self._backoff * (2**attempt)
                attempt += 1
                logger.debug(
                    f"Retrying {request.method} {request.url} in {delay:.2f}s "
                    f"(attempt {attempt}/{self._max_retries}): {e!r}"
                )
                await asyncio.sleep(delay)


class LoggerInterceptor(Interceptor):
    """Logs each attempt; `debug=True` raises verbosity to INFO with details."""

    order = LOGGER_ORDER

    def __init__(self, debug: bool = False):
        self._debug = debug

    async def intercept(self, request: Request, next: Chain) -> httpx.Response:
        if self._debug:
            logger.info(
                f"--> {request.method} {request.url} params={request.params} "
                f"headers={request.headers}"
            )
        started = time.monotonic()
        try:
            response = await next(request)
        except Exception as e:
            elapsed_ms = (time.monotonic() - started) * 1000
            logger.warning(f"<-- {request.method} {request.url} failed after {elapsed_ms:.0f}ms: {e!r}")
            raise

        elapsed_ms = (time.monotonic() - started) * 1000
        level = logging.INFO if self._debug else logging.DEBUG
        logger.log(
            level,
            f"<-- {response.status_code} {request.method} {request.url} ({elapsed_ms:.0f}ms)",
        )
        return response
