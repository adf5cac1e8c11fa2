"""snyk-reach CLI."""

from __future__ import annotations

import json

import typer

from snyk_reach.server.app import ServerApp
from snyk_reach.server.errors import ReachabilityError
from snyk_reach.server.issue_url import InvalidIssueUrlError, decompose_issue_url
from snyk_reach.server.models import IssueRecord
from snyk_reach.server.reachability import reachable_coordinates
from snyk_reach.shared.settings import configure_logging

app = typer.Typer(add_completion=False, help="snyk-reach: Snyk issue reachability lookups")


@app.command("parse-url")
def parse_url(url: str) -> None:
    """Print the org slug, project id and issue key parsed from a Snyk issue URL."""
    try:
        parts = decompose_issue_url(url)
    except InvalidIssueUrlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    typer.echo(json.dumps(parts.as_dict(), indent=2))


@app.command()
def check(
    url: str,
    severity: str = typer.Option(..., "--severity"),
    explain: bool = typer.Option(False, "--explain", help="list the reachable coordinates"),
    budget: float = typer.Option(None, "--budget", help="wall-clock budget in seconds"),
) -> None:
    """Look up a Snyk issue and print its reachability verdict as JSON."""
    configure_logging()
    service = ServerApp()
    try:
        verdict = service.check_reachability(
            {"snykIssueUrl": url, "severity": severity}, budget_s=budget
        )
    except ReachabilityError as exc:
        typer.echo(json.dumps({"status": exc.status_code, **exc.as_dict()}), err=True)
        raise typer.Exit(code=1) from exc

    output = verdict.as_dict()
    if explain:
        output["reachableCoordinates"] = reachable_coordinates(
            IssueRecord(raw=verdict.full_issue_data)
        )
    typer.echo(json.dumps(output, indent=2))


if __name__ == "__main__":
    app()
