"""
Pet Places API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present
  3. Expose Prometheus /metrics endpoint

Error mapping at the boundary:
  request validation → 400 with the field error list
  DuplicateError     → 400 with its message
  anything else      → 500 with a generic message
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from petfinder.config import settings
from petfinder.database import engine, init_db
from petfinder.errors import DuplicateError
from petfinder.telemetry import UNHANDLED_ERRORS_TOTAL, instrument_app, setup_tracing
from petfinder.routers import favorites, places, threads, users

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Pet Places API (env=%s)", settings.environment)
    await init_db()
    logger.info("Database ready. API ready.")
    yield

    logger.info("Shutting down...")
    await engine.dispose()


app = FastAPI(
    title="Pet Places API",
    description=(
        "Find pet-friendly, allergy-safe places nearby, keep favorites "
        "and talk about them with the community."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


# ── Error handlers ─────────────────────────────────────────────────────────
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(DuplicateError)
async def duplicate_error_handler(request: Request, exc: DuplicateError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # StorageError lands here too; internals stay in the log
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    UNHANDLED_ERRORS_TOTAL.inc()
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(places.router, prefix="/api/places", tags=["Places"])
app.include_router(threads.router, prefix="/api/threads", tags=["Community"])
app.include_router(favorites.router, prefix="/api", tags=["Favorites"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
