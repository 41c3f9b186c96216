"""
Retrofit client.

Turns decorated interface classes into objects whose method calls are sent as HTTP
requests through an ordered interceptor chain.

Example:
    ```python
    from retrofit import Retrofit, get


    class UserApi:
        @get("/users/{id}")
        def get_user(self, id: int): ...


    async with (
        Retrofit.get_builder()
        .set_config({"base_url": "https://api.example.com", "debug": True})
        .set_error_handler(lambda reason, exception: print(exception))
        .build()
    ) as client:
        api = client.create(UserApi)
        response = await api.get_user(42)
    ```

Registration contract: `Retrofit.use()` mutates a process-wide registry without
locking. Register every global interceptor before the first client is built; a
client only sees the registrations made before its `build()`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, ClassVar, TypeVar

import httpx

from .config import RetrofitConfig
from .exceptions import IllegalArgumentError
from .interceptors import (
    RESERVED_ORDER_LIMIT,
    Interceptor,
    InterceptorChainActor,
    LoggerInterceptor,
    RealCall,
    RetryRequestInterceptor,
)
from .proxy import ErrorHandler, ProxyContext, ProxyHandler

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _check_order(interceptor: Interceptor, minimum: int, message: str) -> None:
    order = getattr(interceptor, "order", None)
    if not isinstance(order, int) or isinstance(order, bool):
        raise IllegalArgumentError(f"Interceptor {interceptor!r} has no integer order")
    if order < minimum:
        raise IllegalArgumentError(message)


class RetrofitBuilder:
    """Collects configuration for one `Retrofit` client."""

    def __init__(self) -> None:
        self._config = RetrofitConfig()
        self._error_handler: ErrorHandler | None = None
        self._interceptors: dict[int, Interceptor] = {}

    def set_config(self, config: RetrofitConfig | Mapping[str, Any]) -> RetrofitBuilder:
        self._config = (
            config if isinstance(config, RetrofitConfig) else RetrofitConfig.model_validate(config)
        )
        return self

    def get_config(self) -> RetrofitConfig:
        return self._config

    def set_error_handler(self, handler: ErrorHandler | None) -> RetrofitBuilder:
        self._error_handler = handler
        return self

    def get_error_handler(self) -> ErrorHandler | None:
        return self._error_handler

    def add_interceptor(self, *interceptors: Interceptor) -> RetrofitBuilder:
        """
        Add client-scoped interceptors.

        Raises:
            IllegalArgumentError: If an order is below 256 (reserved for built-ins).
        """
        for interceptor in interceptors:
            _check_order(
                interceptor,
                RESERVED_ORDER_LIMIT,
                f"Orders below {RESERVED_ORDER_LIMIT} are reserved for built-in interceptors "
                f"(got {getattr(interceptor, 'order', None)})",
            )
            self._interceptors[interceptor.order] = interceptor
        return self

    def get_interceptors(self) -> list[Interceptor]:
        return list(self._interceptors.values())

    def build(self) -> Retrofit:
        return Retrofit(
            config=self._config,
            error_handler=self._error_handler,
            interceptors=dict(self._interceptors),
        )


class Retrofit:
    """
    Client owning the engine, the interceptor chain and one proxy handler per class.

    Build instances with `Retrofit.get_builder()`.
    """

    _interceptors: ClassVar[dict[int, Interceptor]] = {}

    def __init__(
        self,
        *,
        config: RetrofitConfig,
        error_handler: ErrorHandler | None = None,
        interceptors: Mapping[int, Interceptor] | None = None,
    ):
        self._config = config
        self._error_handler = error_handler
        self._proxies: dict[type, ProxyHandler[Any]] = {}

        real_call = RealCall()
        retries = RetryRequestInterceptor()
        request_logger = LoggerInterceptor(config.debug)

        # Last merged wins: built-ins, then process-wide, then client-scoped.
        merged: dict[int, Interceptor] = {
            real_call.order: real_call,
            retries.order: retries,
            request_logger.order: request_logger,
        }
        merged.update(Retrofit._interceptors)
        merged.update(interceptors or {})

        for interceptor in merged.values():
            interceptor.init(config)
        self._actor = InterceptorChainActor(merged.values())
        merged.clear()

        # Created last so a failing init() leaves no open engine behind.
        self._engine = httpx.AsyncClient(**config.engine_options())
        real_call.bind(self._engine)

        logger.debug(
            "Built client with interceptor orders "
            f"{[interceptor.order for interceptor in self._actor.interceptors]}"
        )

    @staticmethod
    def get_builder() -> RetrofitBuilder:
        return RetrofitBuilder()

    @classmethod
    def use(cls, *interceptors: Interceptor) -> None:
        """
        Register interceptors for every client built afterwards.

        Registrations persist across builds: each client copies the registry when
        it is built and never clears it, so a later client still sees them. Clients
        that are already built are not affected.

        Raises:
            IllegalArgumentError: If an order is negative.
        """
        for interceptor in interceptors:
            _check_order(interceptor, 0, "Interceptor order can not be less than zero")
            cls._interceptors[interceptor.order] = interceptor

    def create(self, cls: type[T]) -> T:
        """Generate an instance of `cls` whose decorated methods perform requests."""
        if not isinstance(cls, type):
            raise TypeError(f"Expect class object but got {type(cls).__name__}")

        handler = self._proxies.get(cls)
        if handler is None:
            handler = ProxyHandler(
                ProxyContext(
                    config=self._config,
                    actor=self._actor,
                    error_handler=self._error_handler,
                )
            )
            self._proxies[cls] = handler
        return handler.construct(cls)

    def get_engine(self) -> httpx.AsyncClient:
        return self._engine

    def get_config(self) -> RetrofitConfig:
        return self._config

    def get_error_handler(self) -> ErrorHandler | None:
        return self._error_handler

    def get_interceptors(self) -> list[Interceptor]:
        """The assembled chain, in ascending order."""
        return list(self._actor.interceptors)

    async def aclose(self) -> None:
        """Close the engine and release connections."""
        await self._engine.aclose()

    async def __aenter__(self) -> Retrofit:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
