import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sessionstore.config import APP_ENV, DB_DRIVER, HEARTBEAT_INTERVAL_SECONDS, INSTANCE, LOG_LEVEL
from sessionstore.exceptions import StoreError
from sessionstore.middleware import RequestLoggingMiddleware, setup_logging
from sessionstore.routers import companies, users
from sessionstore.service import SessionStoreService, new_service

logger = logging.getLogger("sessionstore")


async def heartbeat_loop(service: SessionStoreService, interval: float):
    """Periodically re-assert "online" for every connected user."""
    while True:
        await asyncio.sleep(interval)
        try:
            failures = await asyncio.to_thread(service.usage.mark_all_connected_online)
        except StoreError as exc:
            logger.error("Heartbeat scan failed: %s", exc)
            continue
        except Exception:
            # the loop must outlive any single scan
            logger.exception("Heartbeat scan failed")
            continue
        if failures:
            logger.warning(
                "Heartbeat failed for %d users: %s",
                len(failures),
                ", ".join(str(f.user_id) for f in failures),
            )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    body = {"code": exc.code, "message": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app(
    service: SessionStoreService | None = None,
    heartbeat_interval: float | None = None,
) -> FastAPI:
    """Build the app. Without ``service`` the lifespan connects using the environment."""
    interval = HEARTBEAT_INTERVAL_SECONDS if heartbeat_interval is None else heartbeat_interval

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.start_time = time.time()
        setup_logging(LOG_LEVEL, INSTANCE)
        logger.info("Starting session store (env=%s, driver=%s, instance=%s)", APP_ENV, DB_DRIVER, INSTANCE or "-")

        owned = service is None
        app.state.service = service or new_service()
        logger.info("Database ready")

        heartbeat = None
        if interval > 0:
            heartbeat = asyncio.create_task(heartbeat_loop(app.state.service, interval))

        try:
            yield
        finally:
            try:
                if heartbeat is not None:
                    heartbeat.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await heartbeat
            finally:
                if owned:
                    app.state.service.close()
                logger.info("Shutting down session store")

    app = FastAPI(title="Session Store", lifespan=lifespan)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_middleware(RequestLoggingMiddleware, instance=service.instance if service else INSTANCE)

    app.include_router(users.router)
    app.include_router(companies.router)

    @app.get("/api/health")
    def health_check(request: Request):
        svc: SessionStoreService = request.app.state.service
        db_status = "connected" if svc.store.ping() else "disconnected"
        return {
            "status": "healthy" if db_status == "connected" else "unhealthy",
            "database": db_status,
            "database_type": svc.store.backend,
            "instance": svc.instance,
            "environment": APP_ENV,
            "uptime_seconds": round(time.time() - request.app.state.start_time, 1),
        }

    return app


app = create_app()
