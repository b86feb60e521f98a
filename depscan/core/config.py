"""Scanner configuration — defaults, environment overrides, transport tuning."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

import httpx

from depscan import __version__

DEFAULT_SERVICE_INDEX_URL = "https://api.nuget.org/v3/index.json"
DEFAULT_SEARCH_URL = "https://azuresearch-usnc.nuget.org/query"
DEFAULT_CONTENT_URL = "https://api.nuget.org/v3-flatcontainer/"


class StopPolicy(str, Enum):
    """What happens once a worker finds a matching package."""

    ALL = "all"  # cancel the ingestor and every worker
    WORKER = "worker"  # only the matching worker stops
    NEVER = "never"  # keep scanning, collect every match


def _env_str(key: str, default: str | None) -> str | None:
    # Empty counts as unset.
    value = os.environ.get(key)
    return value if value else default


def _env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    return int(value) if value else default


def _env_float(key: str, default: float) -> float:
    value = os.environ.get(key)
    return float(value) if value else default


@dataclass(frozen=True)
class TransportConfig:
    """HTTP connection-pool tuning handed to every registry client."""

    max_connections: int = 32
    max_keepalive_connections: int = 32
    keepalive_expiry: float = 10.0
    timeout: float | None = 60.0
    user_agent: str = f"nuget-depscan/{__version__}"

    def limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=self.max_keepalive_connections,
            keepalive_expiry=self.keepalive_expiry,
        )

    def httpx_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.timeout)

    def client_kwargs(self) -> dict:
        """Keyword arguments for ``httpx.AsyncClient``."""
        return {
            "limits": self.limits(),
            "timeout": self.httpx_timeout(),
            "headers": {"User-Agent": self.user_agent},
            "follow_redirects": True,
        }

    @classmethod
    def from_env(cls) -> TransportConfig:
        timeout = _env_float("DEPSCAN_HTTP_TIMEOUT", 60.0)
        return cls(
            max_connections=_env_int("DEPSCAN_HTTP_MAX_CONNECTIONS", 32),
            max_keepalive_connections=_env_int("DEPSCAN_HTTP_MAX_KEEPALIVE", 32),
            keepalive_expiry=_env_float("DEPSCAN_HTTP_KEEPALIVE_EXPIRY", 10.0),
            timeout=timeout if timeout > 0 else None,
        )


@dataclass(frozen=True)
class ScanConfig:
    """Everything one scan run needs.

    ``search_url`` and ``content_url`` may be ``None``, in which case they
    are resolved from the registry's service index at startup.
    """

    service_index_url: str = DEFAULT_SERVICE_INDEX_URL
    search_url: str | None = DEFAULT_SEARCH_URL
    content_url: str | None = DEFAULT_CONTENT_URL
    package_type: str = "DotnetTool"
    target_prefix: str = "System.CommandLine"
    manifest_suffix: str = ".deps.json"
    page_size: int = 1000
    queue_capacity: int = 1000
    pool_size: int = 32
    stop_policy: StopPolicy = StopPolicy.ALL
    spool_max_memory: int = 8 * 1024 * 1024
    transport: TransportConfig = field(default_factory=TransportConfig)

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.queue_capacity < 1:
            raise ValueError(f"queue_capacity must be positive, got {self.queue_capacity}")
        if self.pool_size < 1:
            raise ValueError(f"pool_size must be positive, got {self.pool_size}")
        if not self.target_prefix:
            raise ValueError("target_prefix must not be empty")

    @classmethod
    def from_env(cls) -> ScanConfig:
        """Build a config from ``DEPSCAN_*`` environment variables."""
        return cls(
            service_index_url=_env_str("DEPSCAN_SERVICE_INDEX_URL", DEFAULT_SERVICE_INDEX_URL),
            search_url=_env_str("DEPSCAN_SEARCH_URL", DEFAULT_SEARCH_URL),
            content_url=_env_str("DEPSCAN_CONTENT_URL", DEFAULT_CONTENT_URL),
            package_type=os.environ.get("DEPSCAN_PACKAGE_TYPE", "DotnetTool"),
            target_prefix=os.environ.get("DEPSCAN_TARGET_PREFIX", "System.CommandLine"),
            page_size=_env_int("DEPSCAN_PAGE_SIZE", 1000),
            queue_capacity=_env_int("DEPSCAN_QUEUE_CAPACITY", 1000),
            pool_size=_env_int("DEPSCAN_POOL_SIZE", 32),
            stop_policy=StopPolicy(os.environ.get("DEPSCAN_STOP_POLICY", StopPolicy.ALL.value)),
            transport=TransportConfig.from_env(),
        )
