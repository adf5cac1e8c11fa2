"""Split a Snyk issue URL into org slug, project id and issue key."""

from __future__ import annotations

import re
from dataclasses import dataclass

from snyk_reach.server.errors import ClientInputError

ORG_SLUG_RE = re.compile(r"/org/([^/]+)/project/")
PROJECT_ID_RE = re.compile(r"/project/([a-f0-9-]+)(?:#|$)")
ISSUE_KEY_RE = re.compile(r"#issue-(.+)")


class InvalidIssueUrlError(ClientInputError):
    kind = "invalid_issue_url"


@dataclass(frozen=True)
class IssueUrlParts:
    org_slug: str
    project_id: str
    issue_key: str

    def as_dict(self) -> dict[str, str]:
        return {
            "org_slug": self.org_slug,
            "project_id": self.project_id,
            "issue_key": self.issue_key,
        }


def decompose_issue_url(url: str) -> IssueUrlParts:
    """Extract all three identifiers or fail as a whole.

    The patterns are positional: the org slug sits between ``/org/`` and
    ``/project/``, the project id is a lowercase hex/hyphen token ending at
    ``#`` or end of string, and the issue key is everything after ``#issue-``.
    """
    org_match = ORG_SLUG_RE.search(url)
    project_match = PROJECT_ID_RE.search(url)
    issue_match = ISSUE_KEY_RE.search(url)
    if not org_match or not project_match or not issue_match:
        raise InvalidIssueUrlError(
            "Invalid Snyk issue URL format. Could not extract orgSlug, projectId, or issueId."
        )
    return IssueUrlParts(
        org_slug=org_match.group(1),
        project_id=project_match.group(1),
        issue_key=issue_match.group(1),
    )
