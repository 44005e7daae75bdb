"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, Request

from ..context import AppContext
from ..exceptions import UnauthenticatedError


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def current_auth_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    """Identity set by the auth proxy in front of the engine; may be absent."""
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def require_auth_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Reject unauthenticated callers before any storage access."""
    auth_id = current_auth_id(x_user_id)
    if auth_id is None:
        raise UnauthenticatedError()
    return auth_id
