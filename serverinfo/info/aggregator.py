"""
Server Info Aggregator

Collects every registered info section and reduces the results to one
JSON-serializable tree:
- scalars are copied as is
- Counters are flattened to plain {str(key): count} dicts
- non-finite floats and other values are errors (strict) or dropped
- a deep copy of the facts bundle is added under "facts", {} if it fails

Sections are isolated from each other: one failing section is left out of
the tree, the others are still reported.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import structlog

from serverinfo.info.types import (
    Counter,
    InfoData,
    InfoSection,
    MetricValueError,
    is_scalar,
)

logger = structlog.get_logger(__name__)

FACTS_SECTION = "facts"

FactsSource = Union[Mapping[str, Any], Callable[[], Mapping[str, Any]]]


def reduce_info(section: str, data: InfoData, strict: bool = True) -> Dict[str, Any]:
    """
    Reduce one section's metrics to plain values.

    Args:
        section: Section name, for error reporting
        data: Metric values returned by the section
        strict: Raise on unsupported values instead of dropping them

    Raises:
        MetricValueError: In strict mode, for a value neither scalar nor Counter
    """
    reduced: Dict[str, Any] = {}
    for name, value in data.items():
        if isinstance(value, Counter):
            # JSON object keys are strings: 1 and "1" share one entry.
            flat = reduced.setdefault(name, {})
            for key, count in value.entries():
                key = str(key)
                flat[key] = flat.get(key, 0) + count
        elif is_scalar(value):
            reduced[name] = value
        else:
            error = MetricValueError(section, name, value)
            if strict:
                raise error
            logger.error(
                "Dropping unsupported metric value",
                section=section,
                metric=name,
                error=str(error),
            )
    return reduced


class ServerInfo:
    """
    Aggregates info sections in registration order.

    Usage:
        info = ServerInfo(facts={"server": {"version": "1.2"}})
        info.register("process", ProcessInfo())
        info.register("mongo", ObserverInfo(source))
        tree = info.collect()
        docs = info.describe()
    """

    def __init__(
        self,
        sections: Optional[Iterable[Tuple[str, InfoSection]]] = None,
        facts: Optional[FactsSource] = None,
        strict: bool = False,
    ):
        """
        Args:
            sections: (name, section) pairs to register, in order
            facts: Static facts mapping, or a callable returning one
            strict: Raise on unsupported metric values (development)
        """
        self._sections: Dict[str, InfoSection] = {}
        self._descriptions: Optional[Dict[str, Dict[str, dict]]] = None
        self._facts = facts
        self.strict = strict
        self._started = False

        for name, section in sections or ():
            self.register(name, section)

    @property
    def section_names(self) -> List[str]:
        return list(self._sections)

    def register(self, name: str, section: InfoSection) -> None:
        """Register a section under a unique name."""
        if not name:
            raise ValueError("Section name cannot be empty")
        if name == FACTS_SECTION:
            raise ValueError(f"Section name '{FACTS_SECTION}' is reserved")
        if name in self._sections:
            raise ValueError(f"Section already registered: {name}")
        for method in ("describe", "collect"):
            if not callable(getattr(section, method, None)):
                raise TypeError(f"Section {name} does not implement {method}()")

        self._sections[name] = section
        self._descriptions = None
        logger.debug("Registered info section", section=name)

    def get_section(self, name: str) -> Optional[InfoSection]:
        return self._sections.get(name)

    # === Lifecycle ===

    def start(self) -> None:
        """Start the background activity of all sections."""
        if self._started:
            return
        for name, section in self._sections.items():
            start = getattr(section, "start", None)
            if not callable(start):
                continue
            try:
                start()
            except Exception as e:
                logger.error("Section start failed", section=name, error=str(e))
        self._started = True
        logger.info("Server info started", sections=self.section_names)

    async def shutdown(self) -> None:
        """Stop the background activity of all sections."""
        for name, section in self._sections.items():
            shutdown = getattr(section, "shutdown", None)
            if not callable(shutdown):
                continue
            try:
                await shutdown()
            except Exception as e:
                logger.error("Section shutdown failed", section=name, error=str(e))
        self._started = False
        logger.info("Server info shut down")

    # === Collection ===

    def collect(self) -> Dict[str, Any]:
        """
        Collect all sections and the facts.

        Returns:
            {section: {metric: scalar or {key: count}}, "facts": {...}}
        """
        tree: Dict[str, Any] = {}
        for name, section in self._sections.items():
            try:
                data = section.collect()
            except Exception:
                logger.exception("Info section failed", section=name)
                continue
            tree[name] = reduce_info(name, data, strict=self.strict)

        try:
            tree[FACTS_SECTION] = self._copy_facts()
        except Exception:
            logger.exception("Facts source failed")
            tree[FACTS_SECTION] = {}
        return tree

    def describe(self) -> Dict[str, Dict[str, dict]]:
        """
        Descriptions of all metrics by section.

        Built once and cached, unless a section failed to describe itself;
        it is then left out and retried on the next call.
        """
        if self._descriptions is not None:
            return copy.deepcopy(self._descriptions)

        descriptions: Dict[str, Dict[str, dict]] = {}
        complete = True
        for name, section in self._sections.items():
            try:
                descriptions[name] = {
                    metric: description.to_dict()
                    for metric, description in section.describe().items()
                }
            except Exception:
                logger.exception("Info section description failed", section=name)
                complete = False

        if complete:
            self._descriptions = descriptions
        return copy.deepcopy(descriptions)

    def _copy_facts(self) -> Dict[str, Any]:
        facts = self._facts
        if callable(facts):
            facts = facts()
        if not facts:
            return {}
        return copy.deepcopy(dict(facts))
