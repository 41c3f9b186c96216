"""
retrofit: declarative async HTTP clients.

Decorate an interface class, hand it to `Retrofit.create()`, and await its methods.
"""

from __future__ import annotations

from .classifier import add_rule, classify
from .client import Retrofit, RetrofitBuilder
from .config import RetrofitConfig
from .decorators import (
    Body,
    Field,
    Header,
    MethodMetadata,
    Path,
    Query,
    delete,
    get,
    get_metadata,
    head,
    options,
    patch,
    post,
    put,
    service,
)
from .exceptions import (
    ConnectError,
    IllegalArgumentError,
    IllegalStateError,
    MetadataNotFoundError,
    RequestCancelledError,
    RequestTimeoutError,
    RetrofitError,
    SocketError,
    TransportIOError,
)
from .interceptors import Chain, Interceptor, InterceptorChainActor
from .proxy import Call, ErrorHandler, ProxyHandler
from .request import Request, RequestBuilder

__version__ = "0.1.0"

__all__ = [
    # Client
    "Retrofit",
    "RetrofitBuilder",
    "RetrofitConfig",
    "ErrorHandler",
    "Call",
    "ProxyHandler",
    # Metadata
    "Body",
    "Field",
    "Header",
    "MethodMetadata",
    "Path",
    "Query",
    "delete",
    "get",
    "get_metadata",
    "head",
    "options",
    "patch",
    "post",
    "put",
    "service",
    # Requests
    "Request",
    "RequestBuilder",
    # Interceptors
    "Chain",
    "Interceptor",
    "InterceptorChainActor",
    # Classification
    "add_rule",
    "classify",
    # Exceptions
    "ConnectError",
    "IllegalArgumentError",
    "IllegalStateError",
    "MetadataNotFoundError",
    "RequestCancelledError",
    "RequestTimeoutError",
    "RetrofitError",
    "SocketError",
    "TransportIOError",
]
