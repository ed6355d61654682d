"""Deliberately crude simulations of platform failure codes.

Each simulation provokes one failure the platform router reports:

- crash: the process dies shortly after answering (app crashed)
- timeout: the response takes longer than the router's 30 second limit
- memory leak: memory grows until the dyno exceeds its quota
- CPU: a busy loop pins a core
"""

import asyncio
import contextlib
import math
import os
import time
from collections.abc import Callable

from loguru import logger

from .config import Settings
from .exceptions import SimulatedCrash
from .monitoring import memory_usage
from .types import CpuResult

_LEAK_PATTERN = b"memory-leak-data"
_MB = 1024 * 1024


class FailureSimulator:
    """Holds the state shared by the failure endpoints."""

    def __init__(
        self,
        crash_delay: float = 1.0,
        leak_chunk_bytes: int = 10 * _MB,
        leak_interval: float = 1.0,
        leak_max_chunks: int = 50,
        cpu_iterations: int = 50_000_000,
        exit_func: Callable[[int], object] = os._exit,
    ) -> None:
        self.crash_delay = crash_delay
        self.leak_chunk_bytes = leak_chunk_bytes
        self.leak_interval = leak_interval
        self.leak_max_chunks = leak_max_chunks
        self.cpu_iterations = cpu_iterations
        self._exit = exit_func
        self.leaked: list[bytes] = []
        self._leak_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, config: Settings) -> "FailureSimulator":
        """Build a simulator from application settings."""
        return cls(
            crash_delay=config.crash_delay_seconds,
            leak_chunk_bytes=config.memory_leak_chunk_mb * _MB,
            leak_interval=config.memory_leak_interval_seconds,
            leak_max_chunks=config.memory_leak_max_chunks,
            cpu_iterations=config.cpu_iterations,
        )

    @property
    def leak_running(self) -> bool:
        """Whether the memory leak task is still allocating."""
        return self._leak_task is not None and not self._leak_task.done()

    @property
    def leak_limit_mb(self) -> int:
        """Total memory the leak allocates before it stops."""
        return self.leak_max_chunks * self.leak_chunk_bytes // _MB

    @property
    def leak_limit_reached(self) -> bool:
        """Whether every chunk the leak may allocate is already held."""
        return len(self.leaked) >= self.leak_max_chunks

    def schedule_crash(self) -> None:
        """Terminate the process after ``crash_delay`` seconds.

        Must be called from a running event loop.
        """
        logger.error("Intentionally crashing app for H10 testing")
        asyncio.get_running_loop().call_later(self.crash_delay, self._crash)

    def _crash(self) -> None:
        error = SimulatedCrash("Intentional crash for H10 testing")
        logger.opt(exception=error).critical("Uncaught exception, process exiting")
        self._exit(1)

    async def hold(self, duration_ms: int) -> None:
        """Keep a request open for ``duration_ms`` milliseconds."""
        logger.warning(f"Starting timeout test for {duration_ms}ms")
        await asyncio.sleep(duration_ms / 1000)

    def start_memory_leak(self) -> bool:
        """Start allocating memory in the background.

        Returns:
            False if a leak is already running or has reached its limit.
        """
        if self.leak_running:
            logger.warning("Memory leak already running")
            return False
        if self.leak_limit_reached:
            logger.warning(f"Memory leak limit of {self.leak_limit_mb}MB already reached")
            return False

        logger.warning("Starting memory leak for R14 testing")
        self._leak_task = asyncio.create_task(self._leak_memory())
        return True

    async def _leak_memory(self) -> None:
        repeats = max(1, self.leak_chunk_bytes // len(_LEAK_PATTERN))
        while len(self.leaked) < self.leak_max_chunks:
            await asyncio.sleep(self.leak_interval)
            self.leaked.append(_LEAK_PATTERN * repeats)
            logger.warning("Memory usage", chunks=len(self.leaked), **memory_usage())

        logger.error(f"Memory leak stopped at {self.leak_limit_mb}MB to prevent complete crash")

    async def stop(self) -> None:
        """Cancel a running memory leak; allocated memory is kept."""
        if self._leak_task is None:
            return
        self._leak_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._leak_task
        self._leak_task = None

    def burn_cpu(self, iterations: int | None = None) -> CpuResult:
        """Busy loop summing square roots.

        Args:
            iterations: Loop count. Uses the configured default if not provided.

        Returns:
            Elapsed time, the rounded sum and the loop count.
        """
        count = iterations or self.cpu_iterations
        logger.warning("Starting CPU intensive task")

        start = time.perf_counter()
        result = 0.0
        for i in range(count):
            result += math.sqrt(i)
        duration_ms = round((time.perf_counter() - start) * 1000)

        logger.warning(f"CPU intensive task completed in {duration_ms}ms")
        return {"duration": f"{duration_ms}ms", "result": round(result), "iterations": count}
