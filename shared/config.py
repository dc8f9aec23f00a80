from __future__ import annotations
from dataclasses import dataclass, fields, replace
import os
from typing import Any, Callable, Dict, Mapping, Optional


DEFAULT_API_BASE = "https://slack.com/api"
DEFAULT_ORIGIN = "http://localhost/"


@dataclass(frozen=True)
class ClientConfig:
    """
    Runtime settings for one lsh run.

    Every field can be set from the environment with the LSH_ prefix
    (LSH_KEEPALIVE_INTERVAL=5) and overridden again from the CLI.
    """
    api_base: str = DEFAULT_API_BASE
    origin: str = DEFAULT_ORIGIN
    keepalive_interval: float = 10.0   # seconds between pings
    inbound_queue_size: int = 100      # 0 means unbounded
    max_send_retries: int = 5          # consecutive failures before giving up; 0 retries forever
    retry_backoff: float = 0.5         # first retry delay, doubled per failure
    retry_backoff_max: float = 8.0
    http_timeout: float = 10.0
    open_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.keepalive_interval <= 0:
            raise ValueError("keepalive_interval must be positive")
        if self.inbound_queue_size < 0:
            raise ValueError("inbound_queue_size must be >= 0")
        if self.max_send_retries < 0:
            raise ValueError("max_send_retries must be >= 0")
        if self.retry_backoff < 0 or self.retry_backoff_max < 0:
            raise ValueError("retry backoff must be >= 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """Build a config from LSH_* environment variables, falling back to defaults"""
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for f in fields(cls):
            var = f"LSH_{f.name.upper()}"
            raw = environ.get(var)
            if raw is None or raw == "":
                continue
            convert = _converter(f.default)
            try:
                values[f.name] = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {var}: {raw!r}") from e
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "ClientConfig":
        """Return a copy with every non-None override applied"""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    def rtm_url(self, method: str) -> str:
        return f"{self.api_base.rstrip('/')}/{method}"


def _converter(default: Any) -> Callable[[str], Any]:
    if isinstance(default, float):
        return float
    if isinstance(default, int):
        return int
    return str
