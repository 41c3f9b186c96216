"""Interceptor chain and the built-in interceptors."""

from __future__ import annotations

from .builtin import LoggerInterceptor, RealCall, RetryRequestInterceptor
from .chain import (
    LOGGER_ORDER,
    REAL_CALL_ORDER,
    RESERVED_ORDER_LIMIT,
    RETRY_ORDER,
    Chain,
    Interceptor,
    InterceptorChainActor,
    compose,
)

__all__ = [
    "Chain",
    "Interceptor",
    "InterceptorChainActor",
    "LOGGER_ORDER",
    "LoggerInterceptor",
    "REAL_CALL_ORDER",
    "RESERVED_ORDER_LIMIT",
    "RETRY_ORDER",
    "RealCall",
    "RetryRequestInterceptor",
    "compose",
]
