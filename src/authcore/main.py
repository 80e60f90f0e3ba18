"""FastAPI application entry point.

Run with ``uvicorn authcore.main:create_app --factory``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from authcore.api.auth import router as auth_router
from authcore.api.roles import privileges_router
from authcore.api.roles import router as roles_router
from authcore.api.users import router as users_router
from authcore.config import Settings
from authcore.context import AppContext
from authcore.database.engine import init_db
from authcore.database.seed import seed_catalog
from authcore.errors import AppError

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if settings.debug:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


async def _sweep_blacklist(ctx: AppContext, interval: int) -> None:
    """Periodically drop revocation entries past their horizon."""
    while True:
        await asyncio.sleep(interval)
        try:
            await ctx.token_manager.purge_expired()
        except Exception:
            logger.exception("Blacklist sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    ctx: AppContext = app.state.context
    settings = ctx.settings
    logger.info("Starting %s …", settings.app_name)
    if settings.uses_dev_secrets:
        logger.warning(
            "JWT secrets are development defaults; set JWT_ACCESS_SECRET and JWT_REFRESH_SECRET"
        )

    await init_db(ctx.engine)
    await seed_catalog(ctx.session_factory)
    logger.info("Database initialised")

    sweeper = None
    if settings.blacklist_sweep_interval > 0:
        sweeper = asyncio.create_task(_sweep_blacklist(ctx, settings.blacklist_sweep_interval))
    yield

    logger.info("Shutting down %s …", settings.app_name)
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    if app.state.owns_context:
        await ctx.dispose()


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """Build the API around *context*, or around a new one made from *settings*."""
    settings = context.settings if context is not None else (settings or Settings())
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Identity and access control: accounts, OTPs, JWTs, roles and privileges",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.owns_context = context is None
    app.state.context = context or AppContext.build(settings)

    app.add_exception_handler(AppError, app_error_handler)
    app.include_router(auth_router)
    app.include_router(roles_router)
    app.include_router(privileges_router)
    app.include_router(users_router)

    @app.get("/health")
    async def health_check():
        """Simple liveness probe."""
        return {"status": "healthy", "app": settings.app_name}

    return app
