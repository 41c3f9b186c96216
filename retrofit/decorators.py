"""
Request metadata decorators.

Interface classes describe their endpoints declaratively; retrofit reads the
metadata back when a generated instance is called.

Example:
    ```python
    from retrofit import Body, Header, Query, get, post, service


    @service("/v1", headers={"Accept": "application/json"})
    class UserApi:
        @get("/users/{id}")
        def get_user(self, id: int): ...

        @get("/users")
        def search(self, name: str = Query(), page: int = Query(default=1)): ...

        @post("/users")
        def create_user(self, user: NewUser = Body(), token: str = Header("X-Token")): ...
    ```

Parameters without a marker bind to the path when the template names them and to
the query string otherwise.
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, TypeVar

from .exceptions import MetadataNotFoundError

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")

_METADATA_ATTR = "__retrofit_metadata__"
_SERVICE_ATTR = "__retrofit_service__"
_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class _Required:
    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED: Any = _Required()


class ParamKind(Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"
    FIELD = "field"


@dataclass(frozen=True, slots=True)
class ParamMarker:
    """Default value placeholder that tells the builder where an argument goes."""

    kind: ParamKind
    alias: str | None = None
    default: Any = REQUIRED


def Path(alias: str | None = None, *, default: Any = REQUIRED) -> Any:
    return ParamMarker(ParamKind.PATH, alias, default)


def Query(alias: str | None = None, *, default: Any = REQUIRED) -> Any:
    return ParamMarker(ParamKind.QUERY, alias, default)


def Header(alias: str | None = None, *, default: Any = REQUIRED) -> Any:
    return ParamMarker(ParamKind.HEADER, alias, default)


def Body(*, default: Any = REQUIRED) -> Any:
    return ParamMarker(ParamKind.BODY, None, default)


def Field(alias: str | None = None, *, default: Any = REQUIRED) -> Any:
    """Form field; all `Field` parameters of a method make up one form body."""
    return ParamMarker(ParamKind.FIELD, alias, default)


@dataclass(frozen=True, slots=True)
class ParamBinding:
    name: str
    kind: ParamKind
    key: str
    default: Any = REQUIRED


@dataclass(frozen=True, slots=True)
class MethodMetadata:
    """Immutable description of one decorated method."""

    http_method: str
    path: str
    bindings: tuple[ParamBinding, ...]
    signature: inspect.Signature
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ServiceMetadata:
    path: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)


def _default_key(kind: ParamKind, name: str) -> str:
    if kind is ParamKind.HEADER:
        return name.replace("_", "-")
    return name


def _describe(
    func: Callable[..., Any],
    http_method: str,
    path: str,
    headers: Mapping[str, str] | None,
) -> MethodMetadata:
    signature = inspect.signature(func)
    # The first parameter is the instance.
    parameters = list(signature.parameters.values())[1:]
    placeholders = set(_PLACEHOLDER.findall(path))

    bindings: list[ParamBinding] = []
    for param in parameters:
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            raise TypeError(
                f"{func.__qualname__}: variadic parameter '{param.name}' cannot be "
                "bound to a request"
            )
        if isinstance(param.default, ParamMarker):
            marker = param.default
            kind = marker.kind
            key = marker.alias or _default_key(kind, param.name)
            default = marker.default
        else:
            kind = ParamKind.PATH if param.name in placeholders else ParamKind.QUERY
            key = param.name
            default = REQUIRED if param.default is param.empty else param.default
        bindings.append(ParamBinding(param.name, kind, key, default))

    path_keys = {b.key for b in bindings if b.kind is ParamKind.PATH}
    if missing := placeholders - path_keys:
        raise ValueError(
            f"{func.__qualname__}: path placeholders {sorted(missing)} have no parameter"
        )
    if unknown := path_keys - placeholders:
        raise ValueError(
            f"{func.__qualname__}: path parameters {sorted(unknown)} are not in '{path}'"
        )
    kinds = [b.kind for b in bindings]
    if kinds.count(ParamKind.BODY) > 1:
        raise ValueError(f"{func.__qualname__}: at most one Body() parameter is allowed")
    if ParamKind.BODY in kinds and ParamKind.FIELD in kinds:
        raise ValueError(f"{func.__qualname__}: Body() and Field() cannot be combined")

    return MethodMetadata(
        http_method=http_method,
        path=path,
        bindings=tuple(bindings),
        signature=signature.replace(parameters=parameters),
        headers=dict(headers or {}),
    )


def _make_http_method_decorator(
    http_method: str,
) -> Callable[..., Callable[[F], F]]:
    """Factory for HTTP method decorators (@get, @post, etc.)."""

    def method_decorator(path: str, *, headers: Mapping[str, str] | None = None) -> Callable[[F], F]:
        def decorator(func: F) -> F:
            setattr(func, _METADATA_ATTR, _describe(func, http_method, path, headers))
            return func

        return decorator

    return method_decorator


get = _make_http_method_decorator("GET")
post = _make_http_method_decorator("POST")
put = _make_http_method_decorator("PUT")
patch = _make_http_method_decorator("PATCH")
delete = _make_http_method_decorator("DELETE")
head = _make_http_method_decorator("HEAD")
options = _make_http_method_decorator("OPTIONS")


def service(path: str = "", *, headers: Mapping[str, str] | None = None) -> Callable[[type[T]], type[T]]:
    """Class decorator: path prefix and default headers for every endpoint."""

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _SERVICE_ATTR, ServiceMetadata(path=path, headers=dict(headers or {})))
        return cls

    return decorator


def _join_path(prefix: str, path: str) -> str:
    if not prefix:
        return path
    return prefix.rstrip("/") + "/" + path.lstrip("/")


def get_metadata(cls: type, name: str) -> MethodMetadata:
    """
    Metadata for `cls.name`, resolved through inheritance.

    Raises:
        MetadataNotFoundError: If the method was never decorated.
    """
    metadata = getattr(getattr(cls, name, None), _METADATA_ATTR, None)
    if not isinstance(metadata, MethodMetadata):
        raise MetadataNotFoundError(
            f"{cls.__qualname__}.{name} has no request metadata; decorate it with @get, @post, ...",
            owner=cls,
            name=name,
        )

    svc: ServiceMetadata | None = getattr(cls, _SERVICE_ATTR, None)
    if svc is None:
        return metadata
    return replace(
        metadata,
        path=_join_path(svc.path, metadata.path),
        headers={**svc.headers, **metadata.headers},
    )
