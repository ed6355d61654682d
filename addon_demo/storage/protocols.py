"""Storage protocol definitions using typing.Protocol."""

from typing import Any, Protocol

from ..types import PageStat, PageViewRecord


class Repository(Protocol):
    """Repository protocol for page view persistence."""

    configured: bool

    async def log_page_view(
        self, path: str, user_agent: str | None, ip_address: str | None
    ) -> PageViewRecord | None:
        """Record one page view."""
        ...

    async def get_page_view_stats(self, limit: int = 10) -> list[PageStat] | None:
        """Get the most viewed paths."""
        ...

    async def get_total_page_views(self) -> int:
        """Count all recorded page views."""
        ...

    async def delete_older_than(self, days: int) -> int:
        """Delete page views older than ``days`` days."""
        ...

    async def health_check(self) -> bool:
        """Check if repository is healthy."""
        ...

    async def startup(self) -> None:
        """Initialize repository on startup."""
        ...

    async def shutdown(self) -> None:
        """Cleanup repository on shutdown."""
        ...


class Cache(Protocol):
    """Cache protocol for JSON values."""

    @property
    def is_ready(self) -> bool:
        """Whether the cache can serve requests."""
        ...

    async def get(self, key: str) -> Any | None:
        """Get cached value."""
        ...

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set cached value with TTL."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete cached value."""
        ...

    async def increment(self, key: str) -> int:
        """Increment an integer counter."""
        ...

    async def health_check(self) -> bool:
        """Check if cache is healthy."""
        ...

    async def startup(self) -> None:
        """Initialize cache on startup."""
        ...

    async def shutdown(self) -> None:
        """Cleanup cache on shutdown."""
        ...
