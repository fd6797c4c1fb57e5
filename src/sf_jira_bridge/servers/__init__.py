"""HTTP surface of the bridge (Starlette)."""

from .main import build_context, create_app

__all__ = ["build_context", "create_app"]
