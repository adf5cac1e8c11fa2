"""Snyk REST API connector: paged reads, org lookup and issue search."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterator
from urllib.parse import urlsplit

import requests

from snyk_reach.server.errors import (
    ISSUE_NOT_FOUND,
    ORG_NOT_FOUND,
    UPSTREAM_NETWORK_ERROR,
    UPSTREAM_TIMEOUT,
    NotFoundError,
    UpstreamError,
)
from snyk_reach.server.models import IssuePage, IssueRecord, Organization
from snyk_reach.server.snyk_auth import SnykAuth
from snyk_reach.shared.settings import SnykSettings

logger = logging.getLogger(__name__)

JSON_API_MEDIA_TYPE = "application/vnd.api+json"


class SnykAPIConnector:
    def __init__(
        self,
        auth: SnykAuth,
        settings: SnykSettings | None = None,
        session: requests.Session | None = None,
        deadline_at: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.auth = auth
        self.settings = settings or SnykSettings()
        self.base_url = self.settings.api_base.rstrip("/")
        self.session = session or requests.Session()
        self.deadline_at = deadline_at
        self.clock = clock

    def fetch_page(self, url: str, params: dict[str, str] | None = None) -> IssuePage:
        payload = self._get(url, params=params)
        if not isinstance(payload, dict):
            return IssuePage()
        rows = payload.get("data")
        items = [row for row in rows if isinstance(row, dict)] if isinstance(rows, list) else []
        links = payload.get("links") if isinstance(payload.get("links"), dict) else {}
        next_link = links.get("next")
        next_url = self._resolve_link(next_link) if isinstance(next_link, str) and next_link else None
        return IssuePage(items=items, next_url=next_url)

    def iter_pages(self, url: str, params: dict[str, str] | None = None) -> Iterator[IssuePage]:
        """Yield pages lazily, requesting the next one only when asked for it."""
        current: str | None = url
        current_params = params
        while current:
            logger.info("Fetching page from %s", current)
            page = self.fetch_page(current, params=current_params)
            yield page
            current, current_params = page.next_url, None

    def resolve_org(self, slug: str) -> Organization:
        logger.info("Resolving organization for slug %s", slug)
        page = self.fetch_page(
            f"{self.base_url}/orgs",
            params={"version": self.settings.api_version, "slug": slug},
        )
        if not page.items:
            logger.warning("No organization found for slug: %s", slug)
            raise NotFoundError(
                f"Organization not found for the given slug: {slug}",
                kind=ORG_NOT_FOUND,
            )
        org = Organization.from_payload(page.items[0])
        if not org.slug:
            org = Organization(id=org.id, slug=slug, name=org.name)
        logger.info("Found orgId: %s", org.id)
        return org

    def locate_issue(
        self,
        org: Organization,
        project_id: str,
        severity: str,
        issue_key: str,
    ) -> IssueRecord:
        params = {
            "version": self.settings.api_version,
            "scan_item.id": project_id,
            "scan_item.type": "project",
            "effective_severity_level": severity,
            "limit": str(self.settings.page_limit),
        }
        for page in self.iter_pages(f"{self.base_url}/orgs/{org.id}/issues", params=params):
            for row in page.items:
                record = IssueRecord(raw=row)
                if record.key == issue_key:
                    logger.info("Found matching issue by key: %s", issue_key)
                    return record
            if page.next_url is None:
                logger.info("No more pages to fetch.")

        logger.warning(
            "Issue %s not found for project %s in organization %s", issue_key, project_id, org.slug
        )
        raise NotFoundError(
            f'Issue with key "{issue_key}" not found for project {project_id} in organization '
            f'{org.slug} with effective severity "{severity}".',
            kind=ISSUE_NOT_FOUND,
        )

    def _resolve_link(self, link: str) -> str:
        if link.startswith(("http://", "https://")):
            return link
        base = urlsplit(self.base_url)
        if base.path and link.startswith(f"{base.path}/"):
            return f"{base.scheme}://{base.netloc}{link}"
        return f"{self.base_url}/{link.lstrip('/')}"

    def _request_timeout(self) -> float:
        timeout = self.settings.timeout_s
        if self.deadline_at is None:
            return timeout
        remaining = self.deadline_at - self.clock()
        if remaining <= 0:
            raise UpstreamError(
                "Snyk API request failed: invocation time budget exhausted.",
                kind=UPSTREAM_TIMEOUT,
            )
        return min(timeout, remaining)

    def _get(self, url: str, params: dict[str, str] | None = None) -> Any:
        headers = {
            "Accept": JSON_API_MEDIA_TYPE,
            "Content-Type": JSON_API_MEDIA_TYPE,
        }
        if self.auth.token:
            headers["Authorization"] = f"token {self.auth.token}"

        try:
            response = self.session.request(
                method="GET",
                url=url,
                headers=headers,
                params=params,
                timeout=self._request_timeout(),
            )
        except requests.Timeout as exc:
            logger.error("Snyk API request to %s timed out: %s", url, exc)
            raise UpstreamError(
                f"Snyk API request failed: {exc}", kind=UPSTREAM_TIMEOUT
            ) from exc
        except requests.RequestException as exc:
            logger.error("Snyk API request to %s failed: %s", url, exc)
            raise UpstreamError(
                f"Snyk API request failed: {exc}", kind=UPSTREAM_NETWORK_ERROR
            ) from exc

        if response.status_code >= 400:
            payload = _safe_json(response)
            logger.error(
                "Snyk API error response: status=%s payload=%s", response.status_code, payload
            )
            raise UpstreamError(
                f"Snyk API request failed with status code {response.status_code}.",
                status_code=response.status_code,
                detail=_first_error_detail(payload),
                payload=payload,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            body = getattr(response, "text", "")
            logger.error(
                "Snyk API returned a non-JSON body: status=%s payload=%s",
                response.status_code,
                body,
            )
            raise UpstreamError(
                "Snyk API request failed: response body is not valid JSON.",
                payload=body,
            ) from exc


def _safe_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return getattr(response, "text", "")


def _first_error_detail(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    errors = payload.get("errors")
    if not isinstance(errors, list) or not errors or not isinstance(errors[0], dict):
        return ""
    return str(errors[0].get("detail") or "")
