"""
Interceptor chain primitives.

Every call travels through an ordered chain of interceptors. Lower `order` values
wrap outer: they see the request first and the response (or failure) last. The
interceptor registered at `REAL_CALL_ORDER` performs the transport call and is
always the innermost stage.

Orders below `RESERVED_ORDER_LIMIT` belong to the built-in interceptors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TYPE_CHECKING, TypeAlias

import httpx

from ..exceptions import IllegalStateError

if TYPE_CHECKING:
    from ..config import RetrofitConfig
    from ..request import Request

RESERVED_ORDER_LIMIT = 256
RETRY_ORDER = 1
LOGGER_ORDER = 2
REAL_CALL_ORDER = RESERVED_ORDER_LIMIT - 1

Chain: TypeAlias = Callable[["Request"], Awaitable[httpx.Response]]


class Interceptor(ABC):
    """
    One stage of the request chain.

    Implementations may short-circuit (return without awaiting `next`), replace the
    request passed to `next`, or transform the response or failure on the way back.
    Interceptors are shared by every call of a client; keep per-request state local.
    """

    order: int = RESERVED_ORDER_LIMIT

    def init(self, config: RetrofitConfig) -> None:
        """Called once when a client is built, before the first request."""

    @abstractmethod
    async def intercept(self, request: Request, next: Chain) -> httpx.Response: ...


def compose(interceptors: Sequence[Interceptor], terminal: Chain) -> Chain:
    chain = terminal
    for interceptor in reversed(interceptors):
        next_chain = chain

        async def _wrapped(
            request: Request,
            *,
            _ic: Interceptor = interceptor,
            _n: Chain = next_chain,
        ) -> httpx.Response:
            return await _ic.intercept(request, _n)

        chain = _wrapped
    return chain


async def _end_of_chain(request: Request) -> httpx.Response:
    raise IllegalStateError(
        f"No interceptor at order {REAL_CALL_ORDER} handled {request.method} {request.url}"
    )


class InterceptorChainActor:
    """Runs requests through an ordered set of interceptors fixed at assembly."""

    def __init__(self, interceptors: Iterable[Interceptor] = ()):
        ordered = sorted(interceptors, key=lambda interceptor: interceptor.order)
        self._interceptors: tuple[Interceptor, ...] = tuple(ordered)

        terminal: Chain = _end_of_chain
        stages: list[Interceptor] = []
        for interceptor in ordered:
            if interceptor.order == REAL_CALL_ORDER:
                terminal = _terminal_stage(interceptor)
            else:
                stages.append(interceptor)
        self._chain = compose(stages, terminal)

    @property
    def interceptors(self) -> tuple[Interceptor, ...]:
        return self._interceptors

    async def intercept(self, request: Request) -> httpx.Response:
        return await self._chain(request)


def _terminal_stage(interceptor: Interceptor) -> Chain:
    async def _run(request: Request) -> httpx.Response:
        return await interceptor.intercept(request, _end_of_chain)

    return _run
