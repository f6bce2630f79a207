"""FastAPI application factory with lifespan for dgd."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from dgd import __version__
from dgd.settings import DgdSettings, get_settings
from dgd.updater import RestartOrchestrator, UpdateChecker, UpdateService
from dgd.updater.replace import current_executable, get_replacer, is_frozen
from dgd.updater.restart import ShutdownCallback


def build_update_service(
    settings: DgdSettings,
    shutdown_callback: ShutdownCallback | None = None,
) -> UpdateService:
    checker = UpdateChecker(
        settings.update_url,
        max_retries=settings.update_max_retries,
        timeout=settings.update_timeout_seconds,
        download_timeout=settings.update_download_timeout_seconds,
        product=settings.product_name,
    )
    return UpdateService(
        checker,
        RestartOrchestrator(shutdown_callback),
        __version__,
        startup_delay=settings.update_startup_delay_seconds,
    )


async def _flush_logs() -> None:
    logger.info("Graceful shutdown: flushing logs before restart")
    await logger.complete()


def create_app(
    settings: DgdSettings | None = None,
    service: UpdateService | None = None,
    shutdown_callback: ShutdownCallback | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    update_service = service or build_update_service(settings)
    update_service.orchestrator.register_shutdown_callback(shutdown_callback or _flush_logs)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Startup: clear leftovers, schedule update check. Shutdown: cancel it."""
        if is_frozen():
            get_replacer().cleanup(current_executable())
        if settings.update_check_on_startup:
            update_service.start_background_check()
        yield
        await update_service.shutdown()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.update_service = update_service

    # ── mount routers ──
    from dgd.api.routes import health, update

    app.include_router(health.router)
    app.include_router(update.router, prefix="/api/update", tags=["update"])

    return app
