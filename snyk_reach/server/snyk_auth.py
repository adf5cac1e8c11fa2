"""Snyk token loading with safe handling."""

from __future__ import annotations

import os
from dataclasses import dataclass

TOKEN_ENV_VARS = ("SNYK_REACH_TOKEN", "SNYK_TOKEN", "authToken")


@dataclass(frozen=True)
class SnykAuth:
    token: str | None

    def redacted(self) -> dict[str, str]:
        if self.token is None:
            return {"token": "unset"}
        # Snyk tokens are UUIDs; short values are masked entirely.
        if len(self.token) <= 8:
            return {"token": "***"}
        return {"token": f"{self.token[:4]}...{self.token[-4:]}"}


def load_snyk_auth_from_env(env: dict[str, str] | None = None) -> SnykAuth:
    """Return the first non-blank token from ``TOKEN_ENV_VARS``, in order."""
    env_map = os.environ if env is None else env
    for name in TOKEN_ENV_VARS:
        value = (env_map.get(name) or "").strip()
        if value:
            return SnykAuth(token=value)
    return SnykAuth(token=None)
