"""
Request descriptors.

`RequestBuilder` turns method metadata plus call arguments into a `Request`, the
transport-independent description of one call. A `Request` also carries the
call's cancellation state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from .decorators import REQUIRED, MethodMetadata, ParamKind

logger = logging.getLogger(__name__)

CancelHook = Callable[[str], None]


@dataclass(slots=True, eq=False)
class Request:
    method: str
    url: str
    params: list[tuple[str, str]] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)
    json: Any | None = None
    data: Mapping[str, Any] | None = None
    _cancelled: bool = field(default=False, repr=False)
    _cancel_message: str | None = field(default=None, repr=False)
    _cancel_hooks: list[CancelHook] = field(default_factory=list, repr=False)

    def is_cancel(self) -> bool:
        return self._cancelled

    @property
    def cancel_message(self) -> str | None:
        return self._cancel_message

    def on_cancel(self, hook: CancelHook) -> None:
        """Run `hook(message)` when the request is cancelled (immediately if it already is)."""
        if self._cancelled:
            hook(self._cancel_message or "")
            return
        self._cancel_hooks.append(hook)

    def cancel(self, message: str = "") -> None:
        """Mark the request cancelled and signal every registered hook once."""
        if self._cancelled:
            return
        self._cancelled = True
        self._cancel_message = message
        hooks, self._cancel_hooks = self._cancel_hooks, []
        logger.debug(f"Cancelling {self.method} {self.url}: {message!r}")
        for hook in hooks:
            hook(message)

    def to_httpx(self, engine: httpx.AsyncClient) -> httpx.Request:
        return engine.build_request(
            self.method,
            self.url,
            params=self.params or None,
            headers=self.headers or None,
            json=self.json,
            data=self.data,
        )


def _to_wire(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return value


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RequestBuilder:
    """Builds exactly one `Request` per call from metadata and arguments."""

    def build(
        self,
        metadata: MethodMetadata,
        args: Sequence[Any],
        kwargs: Mapping[str, Any] | None = None,
    ) -> Request:
        bound = metadata.signature.bind(*args, **(kwargs or {}))
        arguments = bound.arguments

        path_values: dict[str, str] = {}
        params: list[tuple[str, str]] = []
        headers = dict(metadata.headers)
        form: dict[str, Any] = {}
        body: Any | None = None

        for binding in metadata.bindings:
            value = arguments.get(binding.name, binding.default)
            if value is REQUIRED:
                raise TypeError(f"missing a required argument: '{binding.name}'")

            if binding.kind is ParamKind.PATH:
                if value is None:
                    raise ValueError(f"path parameter '{binding.name}' must not be None")
                path_values[binding.key] = quote(_to_text(value), safe="")
            elif value is None:
                continue
            elif binding.kind is ParamKind.QUERY:
                if isinstance(value, (list, tuple, set, frozenset)):
                    params.extend((binding.key, _to_text(item)) for item in value)
                else:
                    params.append((binding.key, _to_text(value)))
            elif binding.kind is ParamKind.HEADER:
                headers[binding.key] = _to_text(value)
            elif binding.kind is ParamKind.FIELD:
                form[binding.key] = _to_wire(value)
            else:
                body = _to_wire(value)

        return Request(
            method=metadata.http_method,
            url=metadata.path.format_map(path_values),
            params=params,
            headers=headers,
            json=body,
            data=form or None,
        )
