"""
Client configuration.

`RetrofitConfig` is an options bag: the few keys retrofit itself understands are
declared as fields, everything else is forwarded verbatim to the transport engine
(`httpx.AsyncClient`).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Keys consumed by retrofit itself and never passed to the engine.
_CLIENT_ONLY_KEYS = frozenset({"debug", "max_retries", "retry_backoff"})


class RetrofitConfig(BaseModel):
    """
    Configuration shared by the engine and the built-in interceptors.

    Example:
        ```python
        config = RetrofitConfig(
            base_url="https://api.example.com",
            debug=True,
            follow_redirects=True,  # forwarded to httpx.AsyncClient
        )
        ```

    Attributes:
        base_url: Base URL every request path is resolved against.
        timeout: Engine timeout in seconds (`None` disables it).
        headers: Default headers sent with every request.
        debug: Verbose request logging in the logger interceptor.
        max_retries: Retries for idempotent requests on transient failures.
        retry_backoff: Base delay in seconds; doubled after every attempt.
    """

    model_config = ConfigDict(
        extra="allow",
        arbitrary_types_allowed=True,
        frozen=True,
    )

    base_url: str = ""
    timeout: float | None = 30.0
    headers: dict[str, str] = Field(default_factory=dict)
    debug: bool = False
    max_retries: int = Field(default=3, ge=0)
    retry_backoff: float = Field(default=0.5, ge=0)

    def engine_options(self) -> dict[str, Any]:
        """Options forwarded to `httpx.AsyncClient`, unknown keys included."""
        options: dict[str, Any] = {
            "base_url": self.base_url,
            "timeout": self.timeout,
            "headers": dict(self.headers),
        }
        for key, value in (self.model_extra or {}).items():
            if key not in _CLIENT_ONLY_KEYS:
                options[key] = value
        return options
