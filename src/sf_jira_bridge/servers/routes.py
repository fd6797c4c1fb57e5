"""HTTP endpoints for Salesforce requests, Jira webhooks and admin config.

Handlers are intentionally thin:

1. Parse and validate HTTP-layer parameters.
2. Delegate business logic to ``SyncEngine`` / ``ConfigService`` (run in the
   thread pool – the core blocks on network calls and backoff sleeps).
3. Map ``BridgeError`` subclasses to a structured JSON response.

SECURITY NOTE
-------------
• The client secret is write-only: ``GET /config`` never returns it.
• Correlation IDs from ``request.state.correlation_id`` are included in INFO
  logs to aid troubleshooting.

This module is HTTP-only and MUST remain free from business logic.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from sf_jira_bridge.core.errors import (
    BridgeError,
    DecodeError,
    LinkageError,
    ValidationError,
)
from sf_jira_bridge.core.payloads import CreateIssueRequest, IssueChangedEvent
from sf_jira_bridge.servers.context import BridgeAppContext

_LOG = logging.getLogger("sf-jira-bridge.routes")

CREATE_ISSUE_ACTION = "CREATE_ISSUE"


def _ctx(request: Request) -> BridgeAppContext:
    return request.app.state.bridge


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "-")


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise DecodeError(source="request body", reason="body is not valid JSON") from None


def _failure(message: str, status: int, **extra: Any) -> JSONResponse:
    return JSONResponse({"success": False, "error": message, **extra}, status_code=status)


# --------------------------------------------------------------------------- #
# POST /salesforce                                                            #
# --------------------------------------------------------------------------- #
async def handle_salesforce_request(request: Request) -> Response:
    """Dispatch a Salesforce External Service call (``{action, data}``)."""
    ctx = _ctx(request)
    try:
        body = await _json_body(request)
        if not isinstance(body, dict):
            raise DecodeError(source="request body", reason="expected object")
        action = body.get("action")
        if action != CREATE_ISSUE_ACTION:
            raise ValidationError(f"Unknown action: {action}")
        create_request = CreateIssueRequest.from_json(body.get("data"))
    except (DecodeError, ValidationError) as exc:
        return _failure(str(exc), 400)

    _LOG.info(
        "Salesforce request action=%s correlation_id=%s", action, _correlation_id(request)
    )
    try:
        result = await run_in_threadpool(
            ctx.engine.forward_create,
            create_request,
            correlation_id=_correlation_id(request),
        )
    except LinkageError as exc:
        _LOG.error("Request failed: %s", exc)
        return _failure(str(exc), 500, issueKey=exc.issue_key)
    except BridgeError as exc:
        _LOG.error("Request failed: %s", exc)
        return _failure(str(exc), 500)
    return JSONResponse(result.to_json())


# --------------------------------------------------------------------------- #
# POST /jira/webhook                                                          #
# --------------------------------------------------------------------------- #
async def handle_jira_webhook(request: Request) -> Response:
    """Propagate a Jira issue update to Salesforce.

    Any failure answers 502 so Jira redelivers the event later.
    """
    ctx = _ctx(request)
    try:
        event = IssueChangedEvent.from_webhook(await _json_body(request))
    except DecodeError as exc:
        return JSONResponse(exc.to_payload(), status_code=400)

    _LOG.info(
        "Jira issue updated: %s correlation_id=%s", event.issue_key, _correlation_id(request)
    )
    deadline = None
    if ctx.request_deadline_seconds:
        deadline = ctx.clock() + ctx.request_deadline_seconds
    try:
        await run_in_threadpool(
            ctx.engine.reverse_sync,
            event,
            deadline=deadline,
            correlation_id=_correlation_id(request),
        )
    except BridgeError as exc:
        return JSONResponse(exc.to_payload(), status_code=502)
    return Response(status_code=204)


# --------------------------------------------------------------------------- #
# GET/POST /config                                                            #
# --------------------------------------------------------------------------- #
async def get_config(request: Request) -> Response:
    config = await run_in_threadpool(_ctx(request).config_service.read_public)
    return JSONResponse(config)


async def post_config(request: Request) -> Response:
    try:
        body = await _json_body(request)
        if not isinstance(body, dict):
            raise DecodeError(source="request body", reason="expected object")
        await run_in_threadpool(_ctx(request).config_service.write, body)
    except (DecodeError, ValidationError) as exc:
        return _failure(str(exc), 400)
    except BridgeError as exc:
        _LOG.error("Configuration update failed: %s", exc)
        return _failure(str(exc), 500)
    _LOG.info("Configuration updated correlation_id=%s", _correlation_id(request))
    return JSONResponse({"success": True})


async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def build_routes() -> list[Route]:
    return [
        Route("/salesforce", handle_salesforce_request, methods=["POST"]),
        Route("/jira/webhook", handle_jira_webhook, methods=["POST"]),
        Route("/config", get_config, methods=["GET"]),
        Route("/config", post_config, methods=["POST"]),
        Route("/healthz", health_check, methods=["GET"]),
    ]
