"""DeviceLink Server - FastAPI Application Entry Point."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pairing_server.config import settings
from pairing_server.database import init_db
from pairing_server.services.maintenance import sweep_expired, sweep_loop
from pairing_server.utils.logs import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and start the expiry sweep on startup."""
    configure_logging(settings.log_level)
    init_db()
    sweep_expired()

    sweeper = None
    if settings.sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(sweep_loop(settings.sweep_interval_seconds))
    logger.info("%s started (db: %s)", settings.server_name, settings.db_path)

    yield

    if sweeper:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


app = FastAPI(
    title="DeviceLink",
    description="Device pairing and device-token lifecycle service",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS - extension origins differ per install
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"error": "invalid_request", "message": "Malformed request body"}},
    )


# --- Register API routers ---
from pairing_server.api.auth import router as auth_router  # noqa: E402
from pairing_server.api.devices import router as devices_router  # noqa: E402
from pairing_server.api.system import router as system_router  # noqa: E402

API_PREFIX = "/api"

app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(devices_router, prefix=API_PREFIX)
app.include_router(system_router, prefix=API_PREFIX)


@app.get("/")
def root():
    """Server info."""
    return {"name": settings.server_name, "version": "0.1.0", "status": "running"}


@app.get("/api/health")
def health():
    return {"status": "ok"}
