"""API Gateway proxy adapter for running the lookup as an AWS Lambda function."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any

from snyk_reach.server.app import ServerApp
from snyk_reach.shared.settings import configure_logging

logger = logging.getLogger(__name__)

# Reserved for serializing the response before the Lambda deadline.
RESPONSE_HEADROOM_S = 0.5


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    configure_logging()
    logger.info(
        "Received event: method=%s path=%s",
        event.get("httpMethod", ""),
        event.get("path", ""),
    )

    service = ServerApp()
    body = _event_body(event)
    if body is None:
        status, payload = 400, {"message": "Invalid JSON in request body."}
    else:
        status, payload = service.handle(body, budget_s=_remaining_budget_s(context))

    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload),
    }


def _event_body(event: dict[str, Any]) -> str | None:
    body = event.get("body")
    if body is None:
        return ""
    if not event.get("isBase64Encoded"):
        return str(body)
    try:
        return base64.b64decode(body, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        logger.warning("Failed to decode base64 request body")
        return None


def _remaining_budget_s(context: Any) -> float | None:
    remaining_ms = getattr(context, "get_remaining_time_in_millis", None)
    if not callable(remaining_ms):
        return None
    return max(0.0, remaining_ms() / 1000.0 - RESPONSE_HEADROOM_S)
