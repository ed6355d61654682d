"""FastAPI application and route handlers."""

import platform
import sys
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from . import __version__
from .config import settings
from .failures import FailureSimulator
from .log import configure_logging
from .middleware import log_requests, track_page_views
from .models import CpuRequest, LogRequest, TimeoutRequest
from .monitoring import memory_usage, process_uptime
from .storage import COUNTER_KEY, SUMMARY_KEY, Cache, Repository, create_cache, create_repository

COUNTER_TTL = 300

LOG_LEVELS = {"error": "ERROR", "warn": "WARNING", "debug": "DEBUG"}


def get_limiter() -> Limiter:
    """Get or create rate limiter."""
    return Limiter(
        key_func=get_remote_address,
        storage_uri="memory://",
        default_limits=[settings.rate_limit],
    )


def current_rate_limit() -> str:
    """Limit for the failure and log endpoints, read on every request."""
    return settings.rate_limit


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    configure_logging()

    repository = create_repository()
    cache = create_cache()

    try:
        await repository.startup()
        await cache.startup()
    except Exception as e:
        logger.error(f"Application startup failed: {e}")
        raise

    app.state.repository = repository
    app.state.cache = cache
    app.state.simulator = FailureSimulator.from_settings(settings)

    logger.info(f"Server running on port {settings.port}")
    logger.info("Add-ons status", environment=settings.environment, **settings.addon_status())

    yield

    await app.state.simulator.stop()
    await repository.shutdown()
    await cache.shutdown()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Add-on Demo App",
    version=__version__,
    description="Showcases platform add-ons, process types and failure codes",
    lifespan=lifespan,
)

app.middleware("http")(track_page_views)
app.middleware("http")(log_requests)

limiter = get_limiter()
app.state.limiter = limiter  # Required by slowapi
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle validation errors with clean messages."""
    error_messages = []

    for error in exc.errors():
        field = error["loc"][-1] if error["loc"] else "field"
        message = error.get("msg", f"Invalid {field}")

        match error["type"]:
            case "missing":
                message = f"Required field '{field}' is missing"
            case "json_invalid":
                message = "Invalid JSON format"

        error_messages.append(message)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "message": "; ".join(error_messages),
            "details": error_messages,
        },
    )


app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]


def get_repository(request: Request) -> Repository:
    """Get the page view repository from app state."""
    return request.app.state.repository  # type: ignore[no-any-return]


def get_cache(request: Request) -> Cache:
    """Get the cache from app state."""
    return request.app.state.cache  # type: ignore[no-any-return]


def get_simulator(request: Request) -> FailureSimulator:
    """Get the failure simulator from app state."""
    return request.app.state.simulator  # type: ignore[no-any-return]


@app.get("/", tags=["health"])
async def root_endpoint() -> dict[str, str]:
    """API information endpoint."""
    return {
        "name": "Add-on Demo App",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/api/health", tags=["health"])
async def health_endpoint(
    request: Request,
    detailed: bool = Query(False, description="Include add-on connectivity"),
) -> dict[str, Any]:
    """Report process health.

    Args:
        detailed: If True, also checks the database and cache connections.

    """
    result: dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime": process_uptime(),
        "environment": settings.environment,
    }

    if detailed:
        result["services"] = {
            "database": await get_repository(request).health_check(),
            "cache": await get_cache(request).health_check(),
        }

    return result


@app.get("/api/info", tags=["health"])
async def info_endpoint() -> dict[str, Any]:
    """Runtime and add-on information."""
    return {
        "app": settings.app_name,
        "version": __version__,
        "python": platform.python_version(),
        "platform": sys.platform,
        "memory": memory_usage(),
        "addons": settings.addon_status(),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/api/stats", tags=["database"], response_model=None)
async def stats_endpoint(
    repository: Annotated[Repository, Depends(get_repository)],
) -> dict[str, Any] | JSONResponse:
    """Page view statistics from the database."""
    try:
        stats = await repository.get_page_view_stats()
        total = await repository.get_total_page_views()
    except Exception as e:
        logger.error(f"Error fetching stats: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch statistics"})

    if stats is None:
        return {"message": "PostgreSQL not configured", "total": 0, "top_pages": []}

    logger.info("Page view stats requested", total=total)
    return {"total": total, "top_pages": stats}


@app.get("/api/cache/test", tags=["cache"], response_model=None)
async def cache_test_endpoint(
    cache: Annotated[Cache, Depends(get_cache)],
) -> dict[str, Any] | JSONResponse:
    """Count visits to this endpoint in the cache."""
    try:
        counter = await cache.get(COUNTER_KEY)

        if counter is None:
            counter = 1
            await cache.set(COUNTER_KEY, counter, COUNTER_TTL)
            logger.info("Cache miss - initialized counter")
        else:
            counter += 1
            await cache.set(COUNTER_KEY, counter, COUNTER_TTL)
            logger.info("Cache hit - incremented counter", counter=counter)
    except Exception as e:
        logger.error(f"Error testing cache: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Cache test failed",
                "message": "Redis error" if settings.redis_url else "Redis not configured",
            },
        )

    return {"message": "Redis cache working", "counter": counter, "cached": counter > 1}


@app.get("/api/summary", tags=["cache"], response_model=None)
async def summary_endpoint(
    cache: Annotated[Cache, Depends(get_cache)],
) -> dict[str, Any] | JSONResponse:
    """Daily summary computed by the worker process."""
    try:
        summary = await cache.get(SUMMARY_KEY)
    except Exception as e:
        logger.error(f"Error fetching summary: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch summary"})

    if not summary:
        return {
            "message": "No summary available yet",
            "note": (
                f"Worker process generates summary every "
                f"{settings.worker_interval_seconds} seconds"
            ),
        }

    logger.info("Daily summary requested")
    return summary  # type: ignore[no-any-return]


@app.post("/api/log", tags=["logging"])
@limiter.limit(current_rate_limit)
async def log_endpoint(request: Request, payload: LogRequest | None = None) -> dict[str, Any]:
    """Emit a log record at the requested level."""
    payload = payload or LogRequest()
    level = LOG_LEVELS.get(payload.level, "INFO")

    logger.bind(source="api").log(level, payload.message)

    return {
        "success": True,
        "message": f"Logged at {payload.level} level",
        "note": "Check the log drain or console for logs",
    }


@app.post("/api/crash", tags=["failures"])
@limiter.limit(current_rate_limit)
async def crash_endpoint(
    request: Request,
    simulator: Annotated[FailureSimulator, Depends(get_simulator)],
) -> dict[str, str]:
    """Crash the process shortly after responding (H10)."""
    simulator.schedule_crash()
    return {"message": "Crash initiated..."}


@app.post("/api/timeout", tags=["failures"])
@limiter.limit(current_rate_limit)
async def timeout_endpoint(
    request: Request,
    simulator: Annotated[FailureSimulator, Depends(get_simulator)],
    payload: TimeoutRequest | None = None,
) -> dict[str, str]:
    """Hold the request past the router timeout (H12)."""
    payload = payload or TimeoutRequest()
    await simulator.hold(payload.duration)
    return {"message": "This response will never be sent due to H12 timeout"}


@app.post("/api/memory-leak", tags=["failures"])
@limiter.limit(current_rate_limit)
async def memory_leak_endpoint(
    request: Request,
    simulator: Annotated[FailureSimulator, Depends(get_simulator)],
) -> dict[str, Any]:
    """Grow memory until the quota is exceeded (R14)."""
    started = simulator.start_memory_leak()
    if started:
        message = "Memory leak started"
    elif simulator.leak_limit_reached:
        message = "Memory leak limit already reached"
    else:
        message = "Memory leak already running"

    return {
        "message": message,
        "started": started,
        "note": (
            "Monitor logs for memory usage. "
            f"Will stop at {simulator.leak_limit_mb}MB to prevent complete crash."
        ),
    }


@app.post("/api/cpu-intensive", tags=["failures"])
@limiter.limit(current_rate_limit)
def cpu_intensive_endpoint(
    request: Request,
    simulator: Annotated[FailureSimulator, Depends(get_simulator)],
    payload: CpuRequest | None = None,
) -> dict[str, Any]:
    """Pin a CPU core with a busy loop."""
    result = simulator.burn_cpu(payload.iterations if payload else None)
    return {"message": "CPU intensive task completed", **result}


app.openapi_tags = [
    {"name": "health", "description": "Health checks and runtime information"},
    {"name": "database", "description": "PostgreSQL add-on"},
    {"name": "cache", "description": "Redis add-on"},
    {"name": "logging", "description": "Log drain add-on"},
    {"name": "failures", "description": "Platform failure code simulations"},
]
