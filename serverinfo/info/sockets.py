"""
Socket Info

Counts the open client sockets, by transport protocol and by whether a
live data session is attached.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Protocol

from serverinfo.info.types import (
    Counter,
    InfoData,
    InfoDescription,
    InfoSection,
    MetricDescription,
    MetricKind,
)


@dataclass(frozen=True)
class SocketSnapshot:
    """Read-only view of one open socket."""
    socket_id: str
    protocol: str = "websocket"
    has_session: bool = False


class SocketSource(Protocol):
    """Read-only access to the open sockets."""

    def open_sockets(self) -> Iterable[SocketSnapshot]:
        ...


class InMemorySocketSource:
    """SocketSource fed by the host as sockets open and close."""

    def __init__(self) -> None:
        self._sockets: Dict[str, SocketSnapshot] = {}

    def put(self, socket: SocketSnapshot) -> None:
        self._sockets[socket.socket_id] = socket

    def discard(self, socket_id: str) -> None:
        self._sockets.pop(socket_id, None)

    def open_sockets(self) -> List[SocketSnapshot]:
        return list(self._sockets.values())


class SocketInfo(InfoSection):
    """Provides the socket-related information."""

    def __init__(self, source: SocketSource):
        self.source = source

    def describe(self) -> InfoDescription:
        return {
            "nSockets": MetricDescription(MetricKind.INTEGER, "Open sockets"),
            "nSocketsWithLivedataSessions": MetricDescription(
                MetricKind.INTEGER, "Open sockets with live data sessions",
            ),
            "socketsByProtocol": MetricDescription(
                MetricKind.ARRAY, "Open sockets, by protocol[]",
            ),
        }

    def collect(self) -> InfoData:
        by_protocol = Counter()
        with_session = 0

        for socket in self.source.open_sockets():
            by_protocol.increment(socket.protocol)
            if socket.has_session:
                with_session += 1

        return {
            "nSockets": by_protocol.total(),
            "nSocketsWithLivedataSessions": with_session,
            "socketsByProtocol": by_protocol,
        }
