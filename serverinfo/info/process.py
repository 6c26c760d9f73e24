"""
Process Info

CPU, RAM and event loop metrics for the current Python process.
"""

from __future__ import annotations

from typing import Any, Optional

import psutil

from serverinfo.info.sampler import ProcessSampler
from serverinfo.info.types import (
    InfoData,
    InfoDescription,
    InfoSection,
    MetricDescription,
    MetricKind,
)


class ProcessInfo(InfoSection):
    """Provides process-level information: RAM, CPU load, loop delay."""

    def __init__(
        self,
        process: Optional[Any] = None,
        sampler: Optional[ProcessSampler] = None,
        interval_ms: Optional[float] = None,
    ):
        """
        Args:
            process: psutil.Process or a stub exposing cpu_times(),
                memory_info() and num_threads()
            sampler: Sampler to reuse; built from process when omitted
            interval_ms: Loop probe interval for a new sampler
        """
        self.process = process if process is not None else psutil.Process()
        self.sampler = sampler or ProcessSampler(self.process, interval_ms=interval_ms)

    def describe(self) -> InfoDescription:
        return {
            "cpuSystem": MetricDescription(
                MetricKind.NUMBER,
                "CPU system seconds since last sample. May be > 1 on multiple cores.",
            ),
            "cpuUser": MetricDescription(
                MetricKind.NUMBER,
                "CPU user seconds since last sample. May be > 1 on multiple cores.",
            ),
            "loopDelay": MetricDescription(
                MetricKind.NUMBER, "The delay of the asyncio event loop, in msec",
            ),
            "nThreads": MetricDescription(MetricKind.INTEGER, "OS threads in the process"),
            "ramRss": MetricDescription(
                MetricKind.INTEGER, "Resident Set Size (heap, code segment, stack)",
            ),
            "ramVms": MetricDescription(MetricKind.INTEGER, "Virtual memory size"),
        }

    def collect(self) -> InfoData:
        ram = self.process.memory_info()
        cpu = self.sampler.sample()
        return {
            "cpuSystem": cpu.system,
            "cpuUser": cpu.user,
            "loopDelay": self.sampler.poll_loop(),
            "nThreads": self.process.num_threads(),
            "ramRss": ram.rss,
            "ramVms": ram.vms,
        }

    def start(self) -> None:
        self.sampler.start()

    async def shutdown(self) -> None:
        await self.sampler.shutdown()
