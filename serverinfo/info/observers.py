"""
Observer Info

Counts the active database observe handles by strategy and collection.

A database driver keeps observe multiplexers, each shared by one or more
observe handles. The driver that tells the strategy (oplog tailing or
polling) and the observed collection lives either on the handle itself or
on its multiplexer. Hosts expose their handles through an ObserverSource;
MultiplexerObserverSource adapts a multiplexer registry to that contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol

import structlog

from serverinfo.info.types import (
    Counter,
    InfoData,
    InfoDescription,
    InfoSection,
    MetricDescription,
    MetricKind,
)

logger = structlog.get_logger(__name__)


class ObserveStrategy(str, Enum):
    """How an observer follows its collection."""
    OPLOG = "oplog"
    POLLING = "polling"


@dataclass(frozen=True)
class ObserveDriver:
    """The strategy indicator of an observer and the collection it watches."""
    collection_name: str
    uses_oplog: bool

    @property
    def strategy(self) -> ObserveStrategy:
        return ObserveStrategy.OPLOG if self.uses_oplog else ObserveStrategy.POLLING


@dataclass(eq=False)
class ObserveHandle:
    """One active observe subscription."""
    driver: Optional[ObserveDriver] = None
    multiplexer: Optional["ObserveMultiplexer"] = field(default=None, repr=False)

    def resolve_driver(self) -> Optional[ObserveDriver]:
        """The handle's own driver, or the one it inherits from its multiplexer."""
        if self.driver is not None:
            return self.driver
        if self.multiplexer is not None:
            return self.multiplexer.driver
        return None


@dataclass(eq=False)
class ObserveMultiplexer:
    """A driver shared by several observe handles."""
    driver: Optional[ObserveDriver] = None
    handles: List[ObserveHandle] = field(default_factory=list)

    def add_handle(self, driver: Optional[ObserveDriver] = None) -> ObserveHandle:
        """Attach a new handle to this multiplexer."""
        handle = ObserveHandle(driver=driver, multiplexer=self)
        self.handles.append(handle)
        return handle


class ObserverSource(Protocol):
    """Read-only access to the active observe handles."""

    def active_handles(self) -> Iterable[ObserveHandle]:
        ...


class MultiplexerObserverSource:
    """
    ObserverSource over a registry of multiplexers, keyed like the driver
    keys them (usually by an observe key string).
    """

    def __init__(self, multiplexers: Optional[Dict[Any, ObserveMultiplexer]] = None):
        self._multiplexers: Dict[Any, ObserveMultiplexer] = (
            multiplexers if multiplexers is not None else {}
        )

    def add_multiplexer(self, key: Any, multiplexer: ObserveMultiplexer) -> None:
        self._multiplexers[key] = multiplexer

    def remove_multiplexer(self, key: Any) -> None:
        self._multiplexers.pop(key, None)

    def active_handles(self) -> List[ObserveHandle]:
        """Snapshot of every handle of every multiplexer."""
        return [
            handle
            for multiplexer in list(self._multiplexers.values())
            for handle in list(multiplexer.handles)
        ]


class ObserverInfo(InfoSection):
    """Provides the observer-related information: observers and observed collections."""

    def __init__(self, source: ObserverSource):
        self.source = source

    def describe(self) -> InfoDescription:
        return {
            "nObserveHandles": MetricDescription(
                MetricKind.INTEGER, "Overall observers count",
            ),
            "oplogObserveHandles": MetricDescription(
                MetricKind.ARRAY, "Oplog-based observers[]",
            ),
            "oplogObserveHandlesCount": MetricDescription(
                MetricKind.INTEGER, "Oplog-based observers",
            ),
            "pollingObserveHandles": MetricDescription(
                MetricKind.ARRAY, "Polling-based observers[]",
            ),
            "pollingObserveHandlesCount": MetricDescription(
                MetricKind.INTEGER, "Polling-based observers",
            ),
            "unclassifiedObserveHandles": MetricDescription(
                MetricKind.INTEGER, "Observers without a driver on handle or multiplexer",
            ),
        }

    def collect(self) -> InfoData:
        """
        Count observers.

        Returns:
            - nObserveHandles: all handles, classified or not
            - oplogObserveHandles: oplog observers by collection
            - oplogObserveHandlesCount: oplog observers
            - pollingObserveHandles: polling observers by collection
            - pollingObserveHandlesCount: polling observers
            - unclassifiedObserveHandles: handles skipped for lack of a driver
        """
        counters = {
            ObserveStrategy.OPLOG: Counter(),
            ObserveStrategy.POLLING: Counter(),
        }
        total = 0
        unclassified = 0

        for handle in self.source.active_handles():
            total += 1
            driver = handle.resolve_driver()
            if driver is None:
                unclassified += 1
                logger.debug("Skipping observe handle without driver", handle=repr(handle))
                continue
            counters[driver.strategy].increment(driver.collection_name)

        oplog = counters[ObserveStrategy.OPLOG]
        polling = counters[ObserveStrategy.POLLING]
        return {
            "nObserveHandles": total,
            "oplogObserveHandles": oplog,
            "oplogObserveHandlesCount": oplog.total(),
            "pollingObserveHandles": polling,
            "pollingObserveHandlesCount": polling.total(),
            "unclassifiedObserveHandles": unclassified,
        }
