"""
Shared FastAPI dependencies.

- get_factory(): returns the initialized ServiceFactory (set at startup).
- require_admin(): X-Admin-Token check for administrative routes.
- build_request_ctx(): per-request RequestContext.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from application.context import RequestContext
from domain.exceptions import AccessDeniedError
from factory import ServiceFactory

# Module-level reference set by app lifespan
_factory: ServiceFactory | None = None


def set_factory(factory: ServiceFactory | None) -> None:
    global _factory
    _factory = factory


def get_factory() -> ServiceFactory:
    if _factory is None:
        raise RuntimeError("ServiceFactory not initialized.")
    return _factory


async def require_admin(
    x_admin_token: Optional[str] = Header(default=None),
    factory: ServiceFactory = Depends(get_factory),
) -> None:
    """Only enforced when ADMIN_TOKEN is configured."""
    expected = factory.config.admin_token
    if expected and x_admin_token != expected:
        raise AccessDeniedError(
            "Invalid or missing admin token",
            context={"code": "admin_token_required"},
        )


def build_request_ctx(user_id: Optional[str], factory: ServiceFactory) -> RequestContext:
    return RequestContext(user_id=(user_id or "").strip() or factory.config.default_user_id)
