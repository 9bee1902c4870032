import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

from app.api.router import api_router
from app.application.exceptions import GatewayError, StorageError
from app.core.config import settings
from app.wiring.dependencies import Container, build_container


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in (
            "booking_id", "contractor_id", "event", "service", "method", "path",
            "status", "duration_ms", "key_prefix", "error",
        ):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

logger = logging.getLogger(__name__)

# Meter bucket for requests that match no route.
UNMATCHED_PATH = "<unmatched>"


def _error_body(message: str, status: int, **extra) -> dict:
    body = {
        "message": message,
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    body.update(extra)
    return {"error": body}


def _route_path(request: Request) -> str:
    """The route template a request resolves to, e.g. /api/v1/bookings/{booking_id}."""
    partial = None
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return route.path
        if match == Match.PARTIAL and partial is None:
            partial = route.path
    return partial or UNMATCHED_PATH


def create_app(container: Container | None = None) -> FastAPI:
    container = container or build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container.dispatcher.start()
        logger.info("%s running", container.settings.APP_NAME)
        yield
        container.dispatcher.stop()

    app = FastAPI(title=container.settings.APP_NAME, version=container.settings.APP_VERSION, lifespan=lifespan)
    app.state.container = container
    app.include_router(api_router)

    @app.middleware("http")
    async def meter_requests(request: Request, call_next):
        meter = request.app.state.container.meter
        method, path = request.method, _route_path(request)
        try:
            meter.record_request(method, path)
        except Exception as e:
            logger.warning("Usage metering failed", extra={"method": method, "path": path, "error": str(e)})

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = round((time.perf_counter() - started) * 1000, 3)
            try:
                meter.record_completion(method, path, status_code, duration_ms)
            except Exception as e:
                logger.warning("Usage metering failed", extra={"method": method, "path": path, "error": str(e)})

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        if isinstance(exc, StorageError):
            logger.error("Storage failure", exc_info=exc, extra={"method": request.method, "path": request.url.path})
            return JSONResponse(status_code=500, content=_error_body("Something went wrong!", 500))
        return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc), exc.status_code))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content=_error_body("Endpoint not found", 404, path=request.url.path),
            )
        return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail), exc.status_code))

    @app.get("/health")
    def health() -> dict[str, str]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": container.settings.APP_VERSION,
        }

    return app


app = create_app()
