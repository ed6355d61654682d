"""APM agent bootstrap and process metrics."""

import os
import time
from collections.abc import Callable
from typing import Any, TypeVar

import psutil
from loguru import logger

from .config import Settings, settings

F = TypeVar("F", bound=Callable[..., Any])

_apm_active = False


def init_apm(config: Settings | None = None, background: bool = False) -> bool:
    """Start the New Relic agent when a licence key is configured.

    Must run before the web framework is imported so the agent can
    instrument it.

    Args:
        config: Settings to read. Uses the global settings if not provided.
        background: Register the application eagerly, as non-web processes need.

    Returns:
        True if the agent is active.
    """
    global _apm_active
    config = config or settings

    if not config.new_relic_license_key:
        logger.debug("NEW_RELIC_LICENSE_KEY not set - APM disabled")
        return False

    import newrelic.agent

    # The agent reads its settings from the environment
    os.environ["NEW_RELIC_LICENSE_KEY"] = config.new_relic_license_key
    os.environ.setdefault("NEW_RELIC_APP_NAME", config.new_relic_app_name or config.app_name)

    newrelic.agent.initialize()
    if background:
        newrelic.agent.register_application(timeout=10.0)

    _apm_active = True
    logger.info("New Relic agent initialized")
    return True


def apm_active() -> bool:
    """Whether init_apm started the agent in this process."""
    return _apm_active


def background_task(func: F, name: str) -> F:
    """Report ``func`` as an APM background transaction when the agent is active."""
    if not _apm_active:
        return func

    import newrelic.agent

    return newrelic.agent.background_task(name=name)(func)  # type: ignore[no-any-return]


def shutdown_apm() -> None:
    """Flush pending APM data."""
    if not _apm_active:
        return

    import newrelic.agent

    newrelic.agent.shutdown_agent(timeout=5.0)


def memory_usage() -> dict[str, str]:
    """Resident and virtual memory of this process."""
    info = psutil.Process().memory_info()
    return {
        "rss": f"{round(info.rss / 1024 / 1024)} MB",
        "vms": f"{round(info.vms / 1024 / 1024)} MB",
    }


def process_uptime() -> float:
    """Seconds since this process started."""
    return round(time.time() - psutil.Process().create_time(), 3)
