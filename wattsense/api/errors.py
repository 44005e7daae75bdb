"""Error log API — recent job failures from the failure log, plus the typed-error handler."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from ..context import AppContext
from ..exceptions import WattSenseError
from ..services.failures import FailureSource
from .deps import get_context

router = APIRouter(prefix="/errors", tags=["errors"])


@router.get("")
def list_errors(
    source: Optional[FailureSource] = None,
    limit: int = Query(50, ge=1, le=500),
    ctx: AppContext = Depends(get_context),
):
    """Return recent failures, optionally for one source."""
    tracker = ctx.error_tracker
    return {
        "errors": [f.as_dict() for f in tracker.recent(source, limit)],
        "total": len(tracker),
        "by_source": tracker.counts_by_source(),
    }


@router.delete("", status_code=204)
def clear_errors(ctx: AppContext = Depends(get_context)):
    """Clear all tracked errors."""
    ctx.error_tracker.clear()


async def wattsense_error_handler(request: Request, exc: WattSenseError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.message, "code": exc.code},
    )
