"""
Server Info Sections

Metric sources and the aggregator combining them.

Usage:
    from serverinfo.info import (
        ServerInfo,
        ProcessInfo,
        ObserverInfo,
        MultiplexerObserverSource,
    )

    info = ServerInfo(strict=True)
    info.register("process", ProcessInfo())
    info.register("mongo", ObserverInfo(MultiplexerObserverSource()))
    info.start()
    tree = info.collect()
    await info.shutdown()
"""

from __future__ import annotations

from serverinfo.info.types import (
    Counter,
    CounterKey,
    InfoData,
    InfoDescription,
    InfoSection,
    MetricDescription,
    MetricKind,
    MetricValue,
    MetricValueError,
    ServerInfoError,
)
from serverinfo.info.sampler import CpuUsage, ProcessSampler
from serverinfo.info.process import ProcessInfo
from serverinfo.info.observers import (
    MultiplexerObserverSource,
    ObserveDriver,
    ObserveHandle,
    ObserveMultiplexer,
    ObserverInfo,
    ObserverSource,
    ObserveStrategy,
)
from serverinfo.info.sessions import (
    InMemorySessionSource,
    SessionInfo,
    SessionSnapshot,
    SessionSource,
)
from serverinfo.info.sockets import (
    InMemorySocketSource,
    SocketInfo,
    SocketSnapshot,
    SocketSource,
)
from serverinfo.info.aggregator import FACTS_SECTION, ServerInfo, reduce_info

__all__ = [
    # Types
    "Counter",
    "CounterKey",
    "InfoData",
    "InfoDescription",
    "InfoSection",
    "MetricDescription",
    "MetricKind",
    "MetricValue",
    "MetricValueError",
    "ServerInfoError",
    # Sampler
    "CpuUsage",
    "ProcessSampler",
    # Sections
    "ProcessInfo",
    "ObserverInfo",
    "SessionInfo",
    "SocketInfo",
    # Sources
    "MultiplexerObserverSource",
    "ObserveDriver",
    "ObserveHandle",
    "ObserveMultiplexer",
    "ObserverSource",
    "ObserveStrategy",
    "InMemorySessionSource",
    "SessionSnapshot",
    "SessionSource",
    "InMemorySocketSource",
    "SocketSnapshot",
    "SocketSource",
    # Aggregator
    "FACTS_SECTION",
    "ServerInfo",
    "reduce_info",
]
