"""Starlette application setup for the Salesforce-Jira bridge."""

import logging
import os

from starlette.applications import Starlette
from starlette.middleware import Middleware

from sf_jira_bridge.clients.jira import JiraIssueClient
from sf_jira_bridge.clients.salesforce import SalesforceRecordClient
from sf_jira_bridge.core.config_service import ConfigService
from sf_jira_bridge.core.store import ConfigStore, default_store
from sf_jira_bridge.core.sync_engine import SyncEngine
from sf_jira_bridge.core.token_manager import TokenManager
from sf_jira_bridge.utils.environment import get_admin_token, get_webhook_secret

from .auth import BridgeAuthMiddleware
from .context import BridgeAppContext
from .correlation import CorrelationIdMiddleware
from .routes import build_routes

logger = logging.getLogger("sf-jira-bridge.server.main")

DEFAULT_REQUEST_DEADLINE_SECONDS = 30.0


def _request_deadline() -> float | None:
    raw = os.getenv("BRIDGE_REQUEST_DEADLINE")
    if raw is None:
        return DEFAULT_REQUEST_DEADLINE_SECONDS
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid BRIDGE_REQUEST_DEADLINE=%r", raw)
        return DEFAULT_REQUEST_DEADLINE_SECONDS
    # 0 disables the deadline
    return value or None


def build_context(store: ConfigStore | None = None) -> BridgeAppContext:
    """Wire store, token manager, REST clients and engine from the environment."""
    store = store or default_store()
    engine = SyncEngine(
        store,
        TokenManager(store),
        JiraIssueClient.from_env(),
        SalesforceRecordClient(),
    )
    return BridgeAppContext(
        engine=engine,
        config_service=ConfigService(store),
        request_deadline_seconds=_request_deadline(),
        admin_token=get_admin_token(),
        webhook_secret=get_webhook_secret(),
    )


def create_app(context: BridgeAppContext | None = None) -> Starlette:
    """Return the ASGI app; *context* defaults to :func:`build_context`."""
    context = context or build_context()
    app = Starlette(
        routes=build_routes(),
        middleware=[
            Middleware(CorrelationIdMiddleware),
            Middleware(
                BridgeAuthMiddleware,
                admin_token=context.admin_token,
                webhook_secret=context.webhook_secret,
            ),
        ],
    )
    app.state.bridge = context
    logger.info("Salesforce-Jira bridge application created")
    return app
