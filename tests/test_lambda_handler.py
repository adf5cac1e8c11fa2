from __future__ import annotations

import base64
import json
from typing import Any

import pytest

import snyk_reach.server.lambda_handler as lambda_module
from snyk_reach.server.app import ServerApp
from snyk_reach.server.snyk_auth import SnykAuth
from snyk_reach.shared.settings import SnykSettings

ISSUE_URL = (
    "https://app.snyk.io/org/acme/project/11111111-2222-3333-4444-555555555555"
    "#issue-SNYK-JS-FOO-123"
)


class FakeResponse:
    def __init__(self, payload: Any) -> None:
        self.status_code = 200
        self.payload = payload
        self.content = b"json"

    def json(self) -> Any:
        return self.payload


class FakeSession:
    def __init__(self, responses: list[FakeResponse]) -> None:
        self.responses = responses
        self.calls: list[dict[str, Any]] = []

    def request(self, **kwargs: Any) -> FakeResponse:
        self.calls.append(kwargs)
        return self.responses.pop(0)


class FakeContext:
    def __init__(self, remaining_ms: int) -> None:
        self.remaining_ms = remaining_ms

    def get_remaining_time_in_millis(self) -> int:
        return self.remaining_ms


def _install_service(monkeypatch: pytest.MonkeyPatch, session: FakeSession, token: str | None):
    monkeypatch.setattr(
        lambda_module,
        "ServerApp",
        lambda: ServerApp(auth=SnykAuth(token=token), settings=SnykSettings(), session=session),
    )


def _event(body: str | None, encoded: bool = False) -> dict[str, Any]:
    return {"httpMethod": "POST", "path": "/", "body": body, "isBase64Encoded": encoded}


def test_handler_returns_gateway_response_for_reachable_issue(monkeypatch: pytest.MonkeyPatch):
    issue = {
        "id": "uuid-1",
        "attributes": {"key": "SNYK-JS-FOO-123", "coordinates": [{"reachability": "function"}]},
    }
    session = FakeSession(
        [FakeResponse({"data": [{"id": "org-9"}]}), FakeResponse({"data": [issue], "links": {}})]
    )
    _install_service(monkeypatch, session, token="snyk-token")

    response = lambda_module.handler(
        _event(json.dumps({"snykIssueUrl": ISSUE_URL, "severity": "Critical"})),
        FakeContext(remaining_ms=30_000),
    )

    assert response["statusCode"] == 200
    assert response["headers"] == {"Content-Type": "application/json"}
    assert json.loads(response["body"]) == {
        "issueId": "uuid-1",
        "isReachable": True,
        "fullIssueData": issue,
    }
    assert all(call["timeout"] <= 10.0 for call in session.calls)


def test_handler_decodes_base64_bodies(monkeypatch: pytest.MonkeyPatch):
    session = FakeSession([])
    _install_service(monkeypatch, session, token=None)
    body = base64.b64encode(
        json.dumps({"snykIssueUrl": ISSUE_URL, "severity": "low"}).encode("utf-8")
    ).decode("ascii")

    response = lambda_module.handler(_event(body, encoded=True))

    assert response["statusCode"] == 500
    assert session.calls == []


def test_handler_rejects_undecodable_base64(monkeypatch: pytest.MonkeyPatch):
    _install_service(monkeypatch, FakeSession([]), token="snyk-token")

    response = lambda_module.handler(_event("%%%not-base64", encoded=True))

    assert response["statusCode"] == 400
    assert json.loads(response["body"]) == {"message": "Invalid JSON in request body."}


def test_handler_missing_body_is_a_client_error(monkeypatch: pytest.MonkeyPatch):
    session = FakeSession([])
    _install_service(monkeypatch, session, token="snyk-token")

    response = lambda_module.handler(_event(None))

    assert response["statusCode"] == 400
    assert session.calls == []


def test_handler_reads_credentials_from_environment(monkeypatch: pytest.MonkeyPatch):
    for name in ("SNYK_REACH_TOKEN", "SNYK_TOKEN", "authToken"):
        monkeypatch.delenv(name, raising=False)

    response = lambda_module.handler(
        _event(json.dumps({"snykIssueUrl": ISSUE_URL, "severity": "low"}))
    )

    assert response["statusCode"] == 500
    assert "not configured" in json.loads(response["body"])["message"]


def test_remaining_budget_reserves_response_headroom():
    assert lambda_module._remaining_budget_s(None) is None
    assert lambda_module._remaining_budget_s(FakeContext(3_000)) == pytest.approx(2.5)
    assert lambda_module._remaining_budget_s(FakeContext(100)) == 0.0
