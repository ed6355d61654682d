"""Request logging and page view tracking middleware."""

import time
import uuid

from fastapi import Request
from loguru import logger


def client_address(request: Request) -> str | None:
    """Original client address.

    The platform router terminates connections and appends the client to
    X-Forwarded-For, so the first hop is the real client.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


async def log_requests(request: Request, call_next):
    """Log every request with its outcome and add a request ID.

    Args:
        request: Incoming FastAPI request.
        call_next: Next middleware or handler in chain.

    Returns:
        Response with X-Request-ID header.

    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    start = time.perf_counter()

    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        duration_ms = round((time.perf_counter() - start) * 1000)
        logger.info(
            "HTTP request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration=f"{duration_ms}ms",
            user_agent=request.headers.get("user-agent"),
        )

        return response


async def track_page_views(request: Request, call_next):
    """Record GET requests to non-API paths as page views."""
    repository = getattr(request.app.state, "repository", None)
    is_page = request.method == "GET" and not request.url.path.startswith("/api/")

    if repository is not None and is_page:
        await repository.log_page_view(
            request.url.path,
            request.headers.get("user-agent"),
            client_address(request),
        )

    return await call_next(request)
