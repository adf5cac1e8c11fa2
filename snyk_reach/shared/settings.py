"""Shared runtime settings for the Snyk API connection and logging."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

DEFAULT_API_BASE = "https://api.snyk.io/rest"
DEFAULT_API_VERSION = "2024-10-15"
DEFAULT_TIMEOUT_S = 10.0
DEFAULT_PAGE_LIMIT = 100


@dataclass(frozen=True)
class SnykSettings:
    """Endpoint, API version and request bounds used by the connector."""

    api_base: str = DEFAULT_API_BASE
    api_version: str = DEFAULT_API_VERSION
    timeout_s: float = DEFAULT_TIMEOUT_S
    page_limit: int = DEFAULT_PAGE_LIMIT
    budget_s: float | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> "SnykSettings":
        source = os.environ if env is None else env
        return cls(
            api_base=(source.get("SNYK_API_BASE") or DEFAULT_API_BASE).rstrip("/"),
            api_version=source.get("SNYK_API_VERSION") or DEFAULT_API_VERSION,
            timeout_s=_positive_float(source.get("SNYK_REQUEST_TIMEOUT_S"), DEFAULT_TIMEOUT_S),
            page_limit=int(_positive_float(source.get("SNYK_PAGE_LIMIT"), DEFAULT_PAGE_LIMIT)),
            budget_s=_positive_float(source.get("SNYK_REACH_BUDGET_S"), None),
            log_level=(source.get("SNYK_REACH_LOG_LEVEL") or "INFO").upper(),
        )


def get_settings(env: dict[str, str] | None = None) -> SnykSettings:
    return SnykSettings.from_env(env)


def configure_logging(settings: SnykSettings | None = None) -> None:
    """Install a root handler once for CLI, ASGI and Lambda entrypoints."""

    level_name = (settings or get_settings()).log_level
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _positive_float(value: str | None, default: float | None) -> float | None:
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default
