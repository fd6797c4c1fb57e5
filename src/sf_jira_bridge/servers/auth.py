"""Request authentication for the bridge endpoints.

Two credentials guard the HTTP surface:

* ``/config`` and ``/salesforce`` require ``Authorization: Bearer <token>``
  matching ``BRIDGE_ADMIN_TOKEN`` (Salesforce sends it from a Named
  Credential).
* ``/jira/webhook`` requires ``X-Hub-Signature: sha256=<hex>``, the HMAC-SHA256
  of the raw body keyed with ``BRIDGE_WEBHOOK_SECRET``, as Jira sends it for
  webhooks registered with a secret.

A guarded path whose credential is not configured rejects every request.
``/healthz`` is always open.

SECURITY NOTE
-------------
• Comparisons use :func:`hmac.compare_digest`.
• Neither the presented token nor the expected one is ever logged.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("sf-jira-bridge.server.auth")

ADMIN_PATHS = frozenset({"/config", "/salesforce"})
WEBHOOK_PATH = "/jira/webhook"
SIGNATURE_HEADER = "X-Hub-Signature"


def sign_webhook_body(secret: str, body: bytes) -> str:
    """Return the ``X-Hub-Signature`` value for *body*."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def _check_bearer(headers: Headers, expected: str | None) -> str | None:
    if not expected:
        return "Unauthorized: admin token not configured"
    header_val = headers.get("authorization", "")
    if not header_val:
        return "Unauthorized: Missing Authorization header"
    if not header_val.startswith("Bearer "):
        return "Unauthorized: Only 'Bearer <token>' is accepted"
    token = header_val[7:].strip()
    if not token:
        return "Unauthorized: Empty Bearer token"
    if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        return "Unauthorized: Invalid token"
    return None


def _check_signature(headers: Headers, body: bytes, secret: str | None) -> str | None:
    if not secret:
        return "Unauthorized: webhook secret not configured"
    presented = headers.get(SIGNATURE_HEADER, "")
    if not presented:
        return f"Unauthorized: Missing {SIGNATURE_HEADER} header"
    expected = sign_webhook_body(secret, body)
    if not hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8")):
        return "Unauthorized: Invalid webhook signature"
    return None


async def _read_body(receive: Receive) -> bytes:
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def _replay(body: bytes, receive: Receive) -> Receive:
    """Return a ``receive`` that yields *body* once, then defers to *receive*."""
    delivered = False

    async def replay() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class BridgeAuthMiddleware:
    """ASGI middleware that rejects unauthenticated admin and webhook calls with 401."""

    def __init__(
        self,
        app: ASGIApp,
        admin_token: str | None = None,
        webhook_secret: str | None = None,
    ) -> None:
        self.app = app
        self.admin_token = admin_token
        self.webhook_secret = webhook_secret
        if not admin_token:
            logger.warning("BRIDGE_ADMIN_TOKEN not set; /config and /salesforce reject all calls")
        if not webhook_secret:
            logger.warning("BRIDGE_WEBHOOK_SECRET not set; /jira/webhook rejects all calls")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "").rstrip("/")
        headers = Headers(scope=scope)
        auth_error = None
        if path in ADMIN_PATHS:
            auth_error = _check_bearer(headers, self.admin_token)
        elif path == WEBHOOK_PATH:
            body = await _read_body(receive)
            auth_error = _check_signature(headers, body, self.webhook_secret)
            receive = _replay(body, receive)

        if auth_error:
            logger.warning("Authentication failed for %s %s: %s", scope.get("method"), path, auth_error)
            response = JSONResponse({"success": False, "error": auth_error}, status_code=401)
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
