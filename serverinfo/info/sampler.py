"""
Process Sampler

Turns cumulative process counters into rate-normalized readings:
- CPU user/system seconds consumed per wall-clock second since last sample
- Event loop delay, measured by a self-scheduled asyncio probe

The loop probe is drift based: it sleeps for a fixed interval and records
how late it woke up. It tells that something held the loop, not what.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import psutil
import structlog

logger = structlog.get_logger(__name__)

# Substituted for a zero wall-clock delta between two CPU samples.
MIN_ELAPSED_SECONDS = 1e-3


@dataclass(frozen=True)
class CpuUsage:
    """
    CPU seconds spent per wall-clock second since the previous sample.

    Values may exceed 1.0 when several cores work concurrently.
    """
    user: float
    system: float


class ProcessSampler:
    """
    Stateful sampler for CPU usage and event loop delay.

    The CPU baseline is read at construction, so the first sample() covers
    the time since construction rather than the whole process lifetime.

    Usage:
        sampler = ProcessSampler()
        sampler.start()              # inside a running event loop
        usage = sampler.sample()
        delay_ms = sampler.poll_loop()
        await sampler.shutdown()
    """

    # Probe interval in milliseconds. Spreads the measurement over many loop
    # iterations to keep its own cost negligible.
    EVENT_LOOP_INTERVAL: float = 10000.0

    def __init__(
        self,
        process: Optional[Any] = None,
        interval_ms: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        hrclock: Callable[[], float] = time.perf_counter,
    ):
        """
        Args:
            process: psutil.Process or any object with a compatible cpu_times()
            interval_ms: Loop probe interval, defaults to EVENT_LOOP_INTERVAL
            clock: Wall clock in seconds
            hrclock: Monotonic high resolution clock in seconds
        """
        self.process = process if process is not None else psutil.Process()
        if interval_ms is None:
            interval_ms = self.EVENT_LOOP_INTERVAL
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.interval_ms = float(interval_ms)
        self._clock = clock
        self._hrclock = hrclock

        times = self.process.cpu_times()
        self._latest_user: float = times.user
        self._latest_system: float = times.system
        self._latest_time: float = self._clock()

        self._latest_probe: float = self._hrclock()
        self._latest_delay: float = 0.0

        self._probe_task: Optional[asyncio.Task] = None
        self._probe_failed = False

    @property
    def running(self) -> bool:
        """True while a probe task is scheduled."""
        return self._probe_task is not None and not self._probe_task.done()

    @property
    def probe_failed(self) -> bool:
        """True when the probe could not be scheduled; loop delay is stale."""
        return self._probe_failed

    # === CPU ===

    def sample(self) -> CpuUsage:
        """Read CPU usage and return it normalized since the previous sample."""
        now = self._clock()
        times = self.process.cpu_times()

        elapsed = now - self._latest_time
        if elapsed == 0:
            # Two samples in the same clock tick.
            elapsed = MIN_ELAPSED_SECONDS

        usage = CpuUsage(
            user=(times.user - self._latest_user) / elapsed,
            system=(times.system - self._latest_system) / elapsed,
        )

        self._latest_time = now
        self._latest_user = times.user
        self._latest_system = times.system
        return usage

    # === Event loop ===

    def poll_loop(self) -> float:
        """Latest event loop delay in milliseconds. Does not trigger a probe."""
        return self._latest_delay

    def probe(self) -> float:
        """Record one probe tick and return the measured delay in milliseconds."""
        now = self._hrclock()
        elapsed_ms = (now - self._latest_probe) * 1e3
        delay = elapsed_ms - self.interval_ms
        self._latest_probe = now
        self._latest_delay = delay
        logger.debug("Event loop probe", delay_ms=round(delay, 2))
        return delay

    def start(self) -> None:
        """
        Schedule the loop probe on the running event loop.

        Starting twice is a no-op. Without a running loop the probe is marked
        failed and poll_loop() keeps returning the last known delay.
        """
        if self.running:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._probe_failed = True
            logger.warning(
                "Event loop probe not scheduled: no running loop",
                last_delay_ms=self._latest_delay,
            )
            return

        self._probe_failed = False
        self._latest_probe = self._hrclock()
        self._probe_task = loop.create_task(self._probe_loop())
        logger.info("Process sampler started", interval_ms=self.interval_ms)

    def stop(self) -> None:
        """Cancel the loop probe. Safe to call when stopped or never started."""
        task, self._probe_task = self._probe_task, None
        if task is not None:
            task.cancel()
            logger.info("Process sampler stopped")

    async def shutdown(self) -> None:
        """Cancel the loop probe and wait for the task to finish."""
        task = self._probe_task
        self.stop()

        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _probe_loop(self) -> None:
        """Background probe loop."""
        interval = self.interval_ms / 1e3
        while True:
            try:
                await asyncio.sleep(interval)
                self.probe()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._probe_failed = True
                logger.error("Event loop probe failed", error=str(e))
                return
