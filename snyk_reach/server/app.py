"""Reachability lookup service with a minimal ASGI HTTP layer."""

from __future__ import annotations

import argparse
import json
import logging
import time
from typing import Any, Callable

import requests
from pydantic import ValidationError

from snyk_reach.server.errors import ClientInputError, ConfigurationError, ReachabilityError
from snyk_reach.server.issue_url import decompose_issue_url
from snyk_reach.server.models import ReachabilityRequest, ReachabilityVerdict, normalize_severity
from snyk_reach.server.reachability import is_reachable
from snyk_reach.server.snyk_auth import SnykAuth, load_snyk_auth_from_env
from snyk_reach.server.snyk_connector_api import SnykAPIConnector
from snyk_reach.shared.settings import SnykSettings, configure_logging

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error."


class ServerApp:
    """Runs one reachability lookup per call; holds no state between calls."""

    def __init__(
        self,
        auth: SnykAuth | None = None,
        settings: SnykSettings | None = None,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.auth = auth if auth is not None else load_snyk_auth_from_env()
        self.settings = settings or SnykSettings.from_env()
        self.session = session
        self.clock = clock

    def check_reachability(
        self,
        payload: Any,
        budget_s: float | None = None,
    ) -> ReachabilityVerdict:
        """Run parse, config, severity, URL, org, issue and reachability stages in order.

        Every stage either advances or raises a ``ReachabilityError``; nothing
        touches the network before the request, credentials, severity and URL
        have all been validated.
        """
        request = self._parse_request(payload)

        if not self.auth.token:
            logger.error("Snyk token is not configured; set SNYK_REACH_TOKEN.")
            raise ConfigurationError(
                "Authentication token is not configured in the service environment."
            )

        severity = normalize_severity(request.severity)
        parts = decompose_issue_url(request.snyk_issue_url)
        logger.info(
            "Parsed URL: orgSlug=%s, projectId=%s, issueId=%s, requested_severity=%s",
            parts.org_slug,
            parts.project_id,
            parts.issue_key,
            request.severity,
        )

        connector = self._build_connector(budget_s)
        org = connector.resolve_org(parts.org_slug)
        record = connector.locate_issue(
            org=org,
            project_id=parts.project_id,
            severity=severity,
            issue_key=parts.issue_key,
        )
        reachable = is_reachable(record)
        logger.info("Issue %s reachability: %s", record.id, reachable)
        return ReachabilityVerdict(
            issue_id=record.id,
            is_reachable=reachable,
            full_issue_data=record.raw,
        )

    def handle(
        self,
        body: bytes | str | None,
        budget_s: float | None = None,
    ) -> tuple[int, dict[str, Any]]:
        """Map a raw JSON body to an HTTP status and response payload."""
        try:
            payload = _decode_body(body)
            verdict = self.check_reachability(payload, budget_s=budget_s)
        except ReachabilityError as exc:
            return exc.status_code, exc.as_dict()
        except Exception:
            logger.exception("Unexpected failure during reachability lookup")
            return 500, {"message": INTERNAL_ERROR_MESSAGE}
        return 200, verdict.as_dict()

    def _parse_request(self, payload: Any) -> ReachabilityRequest:
        if not isinstance(payload, dict):
            raise ClientInputError("Invalid JSON in request body.", kind="invalid_json")
        try:
            return ReachabilityRequest.model_validate(payload)
        except ValidationError as exc:
            raise ClientInputError(
                "Missing snykIssueUrl or severity in request body.",
                kind="missing_required_fields",
            ) from exc

    def _build_connector(self, budget_s: float | None) -> SnykAPIConnector:
        budget = budget_s if budget_s is not None else self.settings.budget_s
        deadline_at = self.clock() + budget if budget is not None else None
        return SnykAPIConnector(
            auth=self.auth,
            settings=self.settings,
            session=self.session,
            deadline_at=deadline_at,
            clock=self.clock,
        )


def _decode_body(body: bytes | str | None) -> Any:
    if body is None or body == b"" or body == "":
        return {}
    try:
        text = body.decode("utf-8") if isinstance(body, bytes) else body
        return json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Failed to parse request body: %s", exc)
        raise ClientInputError("Invalid JSON in request body.", kind="invalid_json") from exc


class ASGIServer:
    """Minimal ASGI adapter exposing the reachability lookup."""

    def __init__(self, service: ServerApp | None = None) -> None:
        self._service = service

    @property
    def service(self) -> ServerApp:
        if self._service is None:
            self._service = create_app()
        return self._service

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope.get("type") != "http":
            await self._send_json(send, 500, {"message": "unsupported_scope"})
            return

        method = scope.get("method", "GET")
        path = scope.get("path", "")
        body = await self._read_body(receive)

        if method == "GET" and path == "/health":
            await self._send_json(send, 200, {"status": "ok"})
            return

        if method == "POST" and path in {"/", "/reachability"}:
            status, payload = self.service.handle(body)
            await self._send_json(send, status, payload)
            return

        await self._send_json(send, 404, {"message": "not_found"})

    async def _read_body(self, receive: Any) -> bytes:
        chunks: list[bytes] = []
        while True:
            message = await receive()
            if message["type"] != "http.request":
                continue
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        return b"".join(chunks)

    async def _send_json(self, send: Any, status: int, payload: dict[str, Any]) -> None:
        body = json.dumps(payload).encode("utf-8")
        await send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": [(b"content-type", b"application/json")],
            }
        )
        await send({"type": "http.response.body", "body": body})


def create_app(
    auth: SnykAuth | None = None,
    settings: SnykSettings | None = None,
) -> ServerApp:
    settings = settings or SnykSettings.from_env()
    configure_logging(settings)
    return ServerApp(auth=auth, settings=settings)


app = ASGIServer()


def main() -> int:
    parser = argparse.ArgumentParser(description="snyk-reach ASGI server entrypoint")
    parser.add_argument(
        "--print-startup",
        action="store_true",
        help="print the supported uvicorn startup command and exit",
    )
    args = parser.parse_args()

    if args.print_startup:
        print("uvicorn snyk_reach.server.app:app --host 127.0.0.1 --port 8000")
        return 0

    configure_logging()
    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
