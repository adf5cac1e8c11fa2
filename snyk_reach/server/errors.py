"""Typed failures for the reachability lookup, each mapped to one HTTP status."""

from __future__ import annotations

from typing import Any


class ReachabilityError(Exception):
    """Base for every failure that terminates a reachability lookup."""

    status_code = 500
    kind = "internal_error"

    def __init__(self, message: str, *, kind: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def as_dict(self) -> dict[str, Any]:
        return {"message": self.message}


class ClientInputError(ReachabilityError):
    status_code = 400
    kind = "invalid_request"


class ConfigurationError(ReachabilityError):
    status_code = 500
    kind = "missing_credentials"


class NotFoundError(ReachabilityError):
    status_code = 404
    kind = "not_found"


ORG_NOT_FOUND = "org_not_found"
ISSUE_NOT_FOUND = "issue_not_found"


class UpstreamError(ReachabilityError):
    """Snyk API failure: non-2xx response, timeout, or network error."""

    kind = "http_error"

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        status_code: int | None = None,
        detail: str = "",
        payload: Any = None,
    ) -> None:
        if detail:
            message = f"{message} Details: {detail}"
        super().__init__(message, kind=kind)
        self.status_code = status_code or 500
        self.detail = detail
        self.payload = payload


UPSTREAM_TIMEOUT = "timeout"
UPSTREAM_NETWORK_ERROR = "network_error"
