"""Shared test fixtures."""

import os
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before the settings are loaded
os.environ["RATE_LIMIT"] = "1000/minute"
os.environ["LOG_LEVEL"] = "ERROR"  # Reduce log noise
for name in (
    "DATABASE_URL",
    "REDIS_URL",
    "NEW_RELIC_LICENSE_KEY",
    "LOG_DRAIN_URL",
    "LOG_FILE",
    "ENVIRONMENT",
    "APP_NAME",
    "WORKER_INTERVAL_SECONDS",
):
    os.environ.pop(name, None)

from addon_demo.api import app  # noqa: E402
from addon_demo.failures import FailureSimulator  # noqa: E402
from addon_demo.log import configure_logging  # noqa: E402

from fakes import InMemoryCache  # noqa: E402

configure_logging()


@pytest.fixture
def repository() -> AsyncMock:
    """Repository mock with a configured database."""
    mock_repository = AsyncMock()
    mock_repository.configured = True
    mock_repository.log_page_view.return_value = None
    mock_repository.get_page_view_stats.return_value = []
    mock_repository.get_total_page_views.return_value = 0
    mock_repository.delete_older_than.return_value = 0
    mock_repository.health_check.return_value = True
    return mock_repository


@pytest.fixture
def cache() -> InMemoryCache:
    """Cache fake that stores values in a dict."""
    return InMemoryCache()


@pytest.fixture
def simulator() -> FailureSimulator:
    """Failure simulator that never kills the test process."""
    return FailureSimulator(
        crash_delay=0,
        leak_chunk_bytes=64,
        leak_interval=0,
        leak_max_chunks=3,
        cpu_iterations=1000,
        exit_func=Mock(),
    )


@pytest_asyncio.fixture
async def client(
    repository: AsyncMock, cache: InMemoryCache, simulator: FailureSimulator
) -> AsyncGenerator[AsyncClient, None]:
    """Test client fixture - add-ons injected via app.state."""
    app.state.repository = repository
    app.state.cache = cache
    app.state.simulator = simulator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await simulator.stop()
