"""FastAPI health endpoint with detailed diagnostics."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text

from ..context import AppContext
from .deps import get_context

router = APIRouter(tags=["health"])


@router.get("/health")
def health(ctx: AppContext = Depends(get_context)):
    """Health check endpoint for load balancers and monitoring."""
    db_ok = False
    db = ctx.session()
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        db_ok = False
    finally:
        db.close()

    status = "ok" if db_ok else "degraded"
    return {
        "status": status,
        "service": "wattsense-engine",
        "checks": {
            "database": "ok" if db_ok else "unreachable",
            "email": "configured" if ctx.settings.smtp_host else "disabled",
            "tips": "gemini" if ctx.settings.gemini_api_key else "fallback",
        },
    }
