"""
Dynamic dispatch for generated instances.

A `ProxyHandler` is created once per interface class. On construction it scans the
class hierarchy a single time and builds a dispatch table (method name ->
intercepted function); every generated instance gets those functions bound as
instance attributes, so a call never walks the MRO.

An intercepted call builds one `Request`, schedules it through the client's
interceptor chain, and returns a `Call`.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Callable, Generator, Mapping, Sequence
from dataclasses import dataclass
from types import MethodType
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

import httpx

from .classifier import classify
from .decorators import get_metadata
from .exceptions import IllegalStateError, RetrofitError
from .request import Request, RequestBuilder

if TYPE_CHECKING:
    from .config import RetrofitConfig
    from .interceptors import InterceptorChainActor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorHandler(Protocol):
    """Notified with the raw failure and its classification before the call fails."""

    def __call__(self, reason: BaseException, exception: RetrofitError | None) -> None: ...


class Call(Generic[T]):
    """
    Awaitable result of an intercepted method call.

    Example:
        ```python
        call = api.get_user(42)
        ...
        call.cancel("user navigated away")
        response = await call  # raises asyncio.CancelledError
        ```
    """

    __slots__ = ("_request", "_task")

    def __init__(self, request: Request, task: asyncio.Task[T]):
        self._request = request
        self._task = task

    def __await__(self) -> Generator[Any, None, T]:
        return self._task.__await__()

    def __repr__(self) -> str:
        return f"<Call {self._request.method} {self._request.url} done={self._task.done()}>"

    @property
    def request(self) -> Request:
        return self._request

    def cancel(self, message: str = "") -> None:
        """Cancel the call; works at any point of the interceptor chain."""
        self._request.cancel(message)

    def cancelled(self) -> bool:
        return self._request.is_cancel()

    def done(self) -> bool:
        return self._task.done()

    def result(self) -> T:
        return self._task.result()

    def exception(self) -> BaseException | None:
        return self._task.exception()

    def add_done_callback(self, fn: Callable[[Call[T]], object]) -> None:
        self._task.add_done_callback(lambda _: fn(self))


@dataclass(frozen=True, slots=True)
class ProxyContext:
    config: RetrofitConfig
    actor: InterceptorChainActor
    error_handler: ErrorHandler | None = None


def scan_methods(cls: type) -> tuple[str, ...]:
    """
    Names of the plain methods defined along `cls.__mro__`, excluding `object`.

    Dunder methods are skipped. Each name appears once, decided by its most-derived
    definition.
    """
    seen: set[str] = set()
    methods: list[str] = []
    for klass in cls.__mro__:
        if klass is object:
            break
        for name, value in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            if name.startswith("__") and name.endswith("__"):
                continue
            if inspect.isfunction(value):
                methods.append(name)
    return tuple(methods)


class ProxyHandler(Generic[T]):
    def __init__(self, context: ProxyContext, builder: RequestBuilder | None = None):
        self._context = context
        self._builder = builder or RequestBuilder()
        self._proxy_cls: type[T] | None = None
        self._methods: tuple[str, ...] = ()
        self._table: dict[str, Callable[..., Call[httpx.Response]]] = {}

    @property
    def methods(self) -> tuple[str, ...]:
        return self._methods

    def construct(self, cls: type[T]) -> T:
        """Instantiate `cls` with every method replaced by its intercepted version."""
        if self._proxy_cls is None:
            self._proxy_cls = cls
            self._methods = scan_methods(cls)
            self._table = {name: self._intercepted(getattr(cls, name)) for name in self._methods}
        elif cls is not self._proxy_cls:
            raise IllegalStateError(
                f"Handler for {self._proxy_cls.__qualname__} cannot construct {cls.__qualname__}"
            )

        instance = cls()
        for name, func in self._table.items():
            setattr(instance, name, MethodType(func, instance))
        return instance

    def _intercepted(self, method: Callable[..., Any]) -> Callable[..., Call[httpx.Response]]:
        @functools.wraps(method)
        def intercepted(target: Any, *args: Any, **kwargs: Any) -> Call[httpx.Response]:
            return self.apply(method, target, args, kwargs)

        return intercepted

    def apply(
        self,
        method: Callable[..., Any],
        target: Any,
        args: Sequence[Any],
        kwargs: Mapping[str, Any] | None = None,
    ) -> Call[httpx.Response]:
        if self._proxy_cls is not None and not isinstance(target, self._proxy_cls):
            raise IllegalStateError(
                "Can not call with other object; bind to an instance of "
                f"{self._proxy_cls.__qualname__} if necessary"
            )

        metadata = get_metadata(type(target), method.__name__)
        request = self._builder.build(metadata, args, kwargs)

        task = asyncio.get_running_loop().create_task(self._dispatch(request))
        return Call(request, task)

    async def _dispatch(self, request: Request) -> httpx.Response:
        try:
            # A call cancelled before its task first ran never reaches the chain.
            if request.is_cancel():
                raise asyncio.CancelledError(request.cancel_message or "")
            current = asyncio.current_task()
            if current is not None:
                request.on_cancel(current.cancel)
            return await self._context.actor.intercept(request)
        except (Exception, asyncio.CancelledError) as reason:
            self._report(request, reason)
            raise

    def _report(self, request: Request, reason: BaseException) -> None:
        handler = self._context.error_handler
        if handler is None:
            return
        try:
            handler(reason, classify(request, reason))
        except Exception:
            logger.exception(f"Error handler failed for {request.method} {request.url}")
