"""Configuration loading for a crawl run."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

from ..recon.links import hostname_of

DEFAULT_MAX_CONCURRENCY = 100
DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_BUFFER_SIZE = 1024 * 1024 * 1024
DEFAULT_SKIP_SUFFIXES = ("readme",)

_TRUTHY = {"1", "true", "yes"}


class ConfigurationError(ValueError):
    """Raised when the crawl cannot start from the given settings."""


@dataclass(frozen=True, slots=True)
class CrawlerConfig:
    """Immutable settings shared by every fetch of one crawl."""

    target_url: str
    hostname: str
    token: str = ""
    insecure: bool = False
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE
    skip_suffixes: Tuple[str, ...] = DEFAULT_SKIP_SUFFIXES
    permit_timeout: Optional[float] = None

    @property
    def authorization(self) -> str:
        return f"Bearer {self.token}"

    @classmethod
    def for_url(cls, target_url: str, **options) -> "CrawlerConfig":
        """Builds a config whose hostname is derived from ``target_url``."""

        try:
            hostname = hostname_of(target_url)
        except ValueError as exc:
            raise ConfigurationError(f"Failed to parse server URL: {exc}") from exc
        return cls(target_url=target_url, hostname=hostname, **options)


def _parse_positive(name: str, raw: str, cast):
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def load_configuration(
    target_url: Optional[str] = None,
    token: Optional[str] = None,
    *,
    insecure: Optional[bool] = None,
    max_concurrency: Optional[int] = None,
    request_timeout: Optional[float] = None,
) -> CrawlerConfig:
    """Builds a ``CrawlerConfig`` from CLI input and environment variables.

    Explicit arguments take precedence over ``RANCHER_SERVER``,
    ``RANCHER_TOKEN``, ``CRAWLER_INSECURE``, ``CRAWLER_MAX_CONCURRENCY`` and
    ``CRAWLER_TIMEOUT``.
    """

    load_dotenv()  # Loads .env values if present

    url = target_url or os.getenv("RANCHER_SERVER")
    if not url:
        raise ConfigurationError("No server URL given (pass a URL or set RANCHER_SERVER)")

    if token is None:
        token = os.getenv("RANCHER_TOKEN", "")

    if insecure is None:
        insecure = os.getenv("CRAWLER_INSECURE", "false").lower() in _TRUTHY

    if max_concurrency is None:
        max_concurrency = _parse_positive(
            "CRAWLER_MAX_CONCURRENCY",
            os.getenv("CRAWLER_MAX_CONCURRENCY", str(DEFAULT_MAX_CONCURRENCY)),
            int,
        )
    elif max_concurrency <= 0:
        raise ConfigurationError(f"max_concurrency must be positive, got {max_concurrency}")

    if request_timeout is None:
        request_timeout = _parse_positive(
            "CRAWLER_TIMEOUT",
            os.getenv("CRAWLER_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT)),
            float,
        )
    elif request_timeout <= 0:
        raise ConfigurationError(f"request_timeout must be positive, got {request_timeout}")

    return CrawlerConfig.for_url(
        url,
        token=token,
        insecure=insecure,
        max_concurrency=max_concurrency,
        request_timeout=request_timeout,
    )
