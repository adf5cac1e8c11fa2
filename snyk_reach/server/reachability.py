"""Reachability predicate over an issue's coordinates."""

from __future__ import annotations

from typing import Any

from snyk_reach.server.models import IssueRecord

REACHABLE_VALUES = ("function", "package")


def is_reachable(record: IssueRecord) -> bool:
    return any(
        coordinate.get("reachability") in REACHABLE_VALUES for coordinate in record.coordinates
    )


def reachable_coordinates(record: IssueRecord) -> list[dict[str, Any]]:
    return [
        coordinate
        for coordinate in record.coordinates
        if coordinate.get("reachability") in REACHABLE_VALUES
    ]
