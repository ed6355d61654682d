"""Tests for the failure simulations."""

import asyncio
import math
from unittest.mock import Mock

import pytest
from loguru import logger

from addon_demo.config import Settings
from addon_demo.exceptions import SimulatedCrash
from addon_demo.failures import FailureSimulator


def test_from_settings() -> None:
    simulator = FailureSimulator.from_settings(
        Settings(
            crash_delay_seconds=2.5,
            memory_leak_chunk_mb=4,
            memory_leak_interval_seconds=0.5,
            memory_leak_max_chunks=8,
            cpu_iterations=123,
        )
    )

    assert simulator.crash_delay == 2.5
    assert simulator.leak_chunk_bytes == 4 * 1024 * 1024
    assert simulator.leak_interval == 0.5
    assert simulator.leak_max_chunks == 8
    assert simulator.cpu_iterations == 123
    assert simulator.leak_limit_mb == 32


def test_default_leak_limit() -> None:
    assert FailureSimulator().leak_limit_mb == 500


class TestCrash:
    """Test the delayed crash."""

    @pytest.mark.asyncio
    async def test_exits_after_delay(self, simulator: FailureSimulator) -> None:
        simulator.crash_delay = 0.01

        simulator.schedule_crash()
        simulator._exit.assert_not_called()
        await asyncio.sleep(0.05)

        simulator._exit.assert_called_once_with(1)

    def test_crash_logs_simulated_crash(self, simulator: FailureSimulator) -> None:
        messages = []

        handler_id = logger.add(messages.append, level="CRITICAL")
        try:
            simulator._crash()
        finally:
            logger.remove(handler_id)

        assert len(messages) == 1
        record = messages[0].record
        assert record["exception"].type is SimulatedCrash
        simulator._exit.assert_called_once_with(1)

    def test_schedule_requires_running_loop(self) -> None:
        simulator = FailureSimulator(exit_func=Mock())

        with pytest.raises(RuntimeError):
            simulator.schedule_crash()


@pytest.mark.asyncio
async def test_hold_sleeps(simulator: FailureSimulator) -> None:
    loop = asyncio.get_running_loop()
    start = loop.time()

    await simulator.hold(20)

    assert loop.time() - start >= 0.015


class TestMemoryLeak:
    """Test the background allocation task."""

    @pytest.mark.asyncio
    async def test_allocates_up_to_limit(self, simulator: FailureSimulator) -> None:
        assert simulator.start_memory_leak() is True
        await simulator._leak_task

        assert len(simulator.leaked) == 3
        assert all(len(chunk) >= 16 for chunk in simulator.leaked)
        assert not simulator.leak_running

    @pytest.mark.asyncio
    async def test_second_start_is_refused(self) -> None:
        simulator = FailureSimulator(leak_interval=60, leak_chunk_bytes=64, exit_func=Mock())

        assert simulator.start_memory_leak() is True
        assert simulator.leak_running
        assert simulator.start_memory_leak() is False

        await simulator.stop()
        assert not simulator.leak_running

    @pytest.mark.asyncio
    async def test_start_refused_once_limit_reached(self, simulator: FailureSimulator) -> None:
        simulator.start_memory_leak()
        await simulator._leak_task

        assert simulator.leak_limit_reached
        assert simulator.start_memory_leak() is False
        assert not simulator.leak_running
        assert len(simulator.leaked) == 3

    @pytest.mark.asyncio
    async def test_stop_keeps_allocated_memory(self, simulator: FailureSimulator) -> None:
        simulator.start_memory_leak()
        await simulator._leak_task
        await simulator.stop()

        assert len(simulator.leaked) == 3

    @pytest.mark.asyncio
    async def test_stop_without_leak(self, simulator: FailureSimulator) -> None:
        await simulator.stop()

        assert simulator.leaked == []


class TestCpu:
    """Test the busy loop."""

    def test_default_iterations(self, simulator: FailureSimulator) -> None:
        result = simulator.burn_cpu()

        assert result["iterations"] == 1000
        assert result["duration"].endswith("ms")
        assert result["result"] == round(sum(math.sqrt(i) for i in range(1000)))

    def test_explicit_iterations(self, simulator: FailureSimulator) -> None:
        result = simulator.burn_cpu(10)

        assert result["iterations"] == 10
        assert result["result"] == round(sum(math.sqrt(i) for i in range(10)))
