"""
Server Info Types

Core data structures shared by every info section:
- Counter: insertion-ordered keyed tally
- MetricValue: scalar or Counter
- MetricDescription / InfoDescription: static metric documentation
- InfoSection: the contract every metric source implements
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, ItemsView, Iterator, Union


class ServerInfoError(Exception):
    """Base class for server info errors."""


class MetricValueError(ServerInfoError):
    """A section returned a metric value that is neither a scalar nor a Counter."""

    def __init__(self, section: str, metric: str, value: object):
        self.section = section
        self.metric = metric
        self.value = value
        super().__init__(
            f"Unsupported value for {section}.{metric}: {type(value).__name__}"
        )


CounterKey = Union[str, int]


class Counter:
    """
    Keyed tally: category -> count.

    Keys keep their insertion order. Counts only ever grow; there is no
    removal. A Counter belongs to the section that built it.
    """

    __slots__ = ("_counts",)

    def __init__(self) -> None:
        self._counts: Dict[CounterKey, int] = {}

    def increment(self, key: CounterKey, step: int = 1) -> None:
        """Add step (default 1) to the count for key, creating it if absent."""
        if step < 1:
            raise ValueError(f"Counter step must be positive, got {step}")
        self._counts[key] = self._counts.get(key, 0) + step

    def entries(self) -> ItemsView[CounterKey, int]:
        """(key, count) pairs in insertion order. Can be iterated repeatedly."""
        return self._counts.items()

    def get(self, key: CounterKey) -> int:
        return self._counts.get(key, 0)

    def total(self) -> int:
        return sum(self._counts.values())

    def to_dict(self) -> Dict[CounterKey, int]:
        return dict(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, key: object) -> bool:
        return key in self._counts

    def __iter__(self) -> Iterator[CounterKey]:
        return iter(self._counts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Counter):
            return NotImplemented
        return list(self._counts.items()) == list(other._counts.items())

    def __repr__(self) -> str:
        return f"Counter({self._counts!r})"


Scalar = Union[int, float]
MetricValue = Union[Scalar, Counter]
InfoData = Dict[str, MetricValue]


class MetricKind(str, Enum):
    """Value types announced in metric descriptions."""
    INTEGER = "integer"
    NUMBER = "number"
    ARRAY = "array"


@dataclass(frozen=True)
class MetricDescription:
    """Documentation for one metric."""
    type: MetricKind
    label: str

    def to_dict(self) -> dict:
        return {"type": self.type.value, "label": self.label}


InfoDescription = Dict[str, MetricDescription]


def is_scalar(value: object) -> bool:
    """True for int and finite float values. bool is not a metric scalar."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


class InfoSection(ABC):
    """
    Base class for metric sources.

    describe() is static documentation: it must list exactly the metric
    names collect() returns. collect() runs once per aggregation cycle and
    may only touch the section's own sampling state.
    """

    @abstractmethod
    def describe(self) -> InfoDescription:
        """Describe the metrics provided by this section."""
        pass

    @abstractmethod
    def collect(self) -> InfoData:
        """Collect the current metric values."""
        pass

    def start(self) -> None:
        """Start background activity, if any. Requires a running event loop."""

    async def shutdown(self) -> None:
        """Release background activity, if any."""
