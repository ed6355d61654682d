"""Type definitions for the add-on demo app."""

from typing_extensions import TypedDict


class PageViewRecord(TypedDict):
    """Database record for one page view."""

    id: int
    path: str
    user_agent: str | None
    ip_address: str | None
    timestamp: str


class PageStat(TypedDict):
    """Aggregated views for one path."""

    path: str
    views: int
    last_view: str | None


class DailySummary(TypedDict):
    """Summary computed by the worker and served from the cache."""

    timestamp: str
    total_views: int
    top_pages: list[PageStat]
    generated_by: str


class CpuResult(TypedDict):
    """Outcome of a CPU burn."""

    duration: str
    result: int
    iterations: int
