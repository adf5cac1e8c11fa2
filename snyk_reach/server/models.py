"""Request/response contracts and read-only views over Snyk REST payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from snyk_reach.server.errors import ClientInputError

SeverityLevel = Literal["critical", "high", "medium", "low"]

SEVERITY_LEVELS: tuple[str, ...] = ("critical", "high", "medium", "low")


class ReachabilityRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    snyk_issue_url: str = Field(alias="snykIssueUrl", min_length=1)
    severity: str = Field(min_length=1)


class ReachabilityVerdict(BaseModel):
    """Outcome of one lookup, serialized with the gateway's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    issue_id: str = Field(alias="issueId")
    is_reachable: bool = Field(alias="isReachable")
    full_issue_data: dict[str, Any] = Field(alias="fullIssueData")

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def normalize_severity(value: str) -> SeverityLevel:
    normalized = value.lower() if isinstance(value, str) else ""
    if normalized not in SEVERITY_LEVELS:
        raise ClientInputError(
            f'Invalid severity level: "{value}". Must be one of: {", ".join(SEVERITY_LEVELS)}.',
            kind="invalid_severity",
        )
    return normalized  # type: ignore[return-value]


@dataclass(frozen=True)
class Organization:
    id: str
    slug: str
    name: str = ""

    @classmethod
    def from_payload(cls, row: dict[str, Any]) -> "Organization":
        attributes = row.get("attributes") if isinstance(row.get("attributes"), dict) else {}
        return cls(
            id=str(row.get("id", "")),
            slug=str(attributes.get("slug", "")),
            name=str(attributes.get("name", "")),
        )


@dataclass(frozen=True)
class IssueRecord:
    """An issue exactly as Snyk returned it; `raw` is passed through untouched."""

    raw: dict[str, Any]

    @property
    def id(self) -> str:
        return str(self.raw.get("id", ""))

    @property
    def attributes(self) -> dict[str, Any]:
        attributes = self.raw.get("attributes")
        return attributes if isinstance(attributes, dict) else {}

    @property
    def key(self) -> str | None:
        key = self.attributes.get("key")
        return key if isinstance(key, str) else None

    @property
    def coordinates(self) -> list[dict[str, Any]]:
        coordinates = self.attributes.get("coordinates")
        if not isinstance(coordinates, list):
            return []
        return [coordinate for coordinate in coordinates if isinstance(coordinate, dict)]


@dataclass(frozen=True)
class IssuePage:
    items: list[dict[str, Any]] = field(default_factory=list)
    next_url: str | None = None
