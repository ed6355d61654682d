"""Logging configuration shared by the web and worker processes."""

import socket
import sys
from logging.handlers import SysLogHandler
from urllib.parse import urlparse

from loguru import logger

from .config import Settings, settings
from .exceptions import ConfigurationError

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level> {extra}"
)
DRAIN_FORMAT = "{extra[service]} {level} {message} {extra}"

_SOCKET_TYPES = {
    "syslog": socket.SOCK_DGRAM,
    "syslog+udp": socket.SOCK_DGRAM,
    "syslog+tcp": socket.SOCK_STREAM,
}


def create_drain_handler(drain_url: str) -> SysLogHandler:
    """Build a syslog handler for a remote log drain.

    Args:
        drain_url: ``syslog://host:port`` (UDP) or ``syslog+tcp://host:port``.

    Returns:
        Handler that forwards records to the drain.

    Raises:
        ConfigurationError: If the URL scheme or address is not usable.
    """
    parsed = urlparse(drain_url)
    socktype = _SOCKET_TYPES.get(parsed.scheme)
    if socktype is None:
        raise ConfigurationError(f"Unsupported log drain scheme: {parsed.scheme!r}")
    if not parsed.hostname or not parsed.port:
        raise ConfigurationError("Log drain URL must include a host and a port")

    return SysLogHandler(address=(parsed.hostname, parsed.port), socktype=socktype)


def configure_logging(config: Settings | None = None) -> None:
    """Configure logging - should be called at startup, not import time.

    Safe to call again: removing a sink closes its drain connection. An
    unreachable drain is logged and skipped like any other add-on.
    """
    config = config or settings

    logger.remove()
    logger.configure(extra={"service": config.app_name, "environment": config.environment})

    if config.log_format == "json":
        logger.add(sys.stderr, level=config.log_level, serialize=True)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=config.log_level)

    if config.log_file:
        logger.add(
            config.log_file,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            level=config.log_level,
        )

    if config.log_drain_url:
        try:
            drain = create_drain_handler(config.log_drain_url)
        except OSError as e:
            logger.warning(f"Log drain unreachable, continuing without it: {e}")
            return
        logger.add(drain, format=DRAIN_FORMAT, level=config.log_level)
