from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

import httpx
import pytest

from retrofit import ErrorHandler, Interceptor, Retrofit, classifier


@pytest.fixture(autouse=True)
def _isolate_process_registries(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(Retrofit, "_interceptors", {})
    monkeypatch.setattr(classifier, "_rules", list(classifier._rules))


@pytest.fixture
def make_client() -> Callable[..., Retrofit]:
    """Client factory backed by `httpx.MockTransport`; retries are off unless asked for."""

    def _make(
        handler: Callable[[httpx.Request], Any],
        *,
        error_handler: ErrorHandler | None = None,
        interceptors: Iterable[Interceptor] = (),
        **config: Any,
    ) -> Retrofit:
        options: dict[str, Any] = {
            "base_url": "https://api.example",
            "max_retries": 0,
            "retry_backoff": 0,
            "transport": httpx.MockTransport(handler),
        }
        options.update(config)
        return (
            Retrofit.get_builder()
            .set_config(options)
            .set_error_handler(error_handler)
            .add_interceptor(*interceptors)
            .build()
        )

    return _make
