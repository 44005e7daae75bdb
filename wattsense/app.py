"""WattSense Engine — FastAPI application factory."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .context import AppContext, build_context
from .exceptions import WattSenseError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    ctx: AppContext = app.state.context
    ctx.init_db()
    tasks: list[asyncio.Task] = []
    if ctx.settings.scheduler_enabled:
        from .services.scheduler import budget_alert_loop, monthly_summary_loop
        tasks.append(asyncio.create_task(budget_alert_loop(ctx, ctx.settings.alert_sweep_interval)))
        tasks.append(asyncio.create_task(monthly_summary_loop(ctx, ctx.settings.summary_check_interval)))
    yield
    for task in tasks:
        task.cancel()
    ctx.dispose()


def create_app(context: AppContext | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    ctx = context or build_context()
    app = FastAPI(
        title=ctx.settings.app_name,
        version=ctx.settings.app_version,
        description="Energy monitoring, budgets and usage alerts",
        lifespan=lifespan,
    )
    app.state.context = ctx

    # CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # API key auth (when WATTSENSE_API_KEY is set)
    from .middleware import ApiKeyMiddleware
    app.add_middleware(ApiKeyMiddleware, api_key=ctx.settings.api_key)

    from .api.errors import wattsense_error_handler
    app.add_exception_handler(WattSenseError, wattsense_error_handler)

    # Register routers
    from .api.health import router as health_router
    from .api.budget import router as budget_router
    from .api.readings import router as readings_router
    from .api.errors import router as errors_router
    app.include_router(health_router)
    app.include_router(budget_router, prefix="/api")
    app.include_router(readings_router, prefix="/api")
    app.include_router(errors_router, prefix="/api")

    return app


app = create_app()
