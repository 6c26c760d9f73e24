"""
Session Info

Counts live client sessions, their subscriptions and the documents they
hold, plus how many users run N concurrent sessions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from serverinfo.info.types import (
    Counter,
    InfoData,
    InfoDescription,
    InfoSection,
    MetricDescription,
    MetricKind,
)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of one client session."""
    session_id: str
    user_id: Optional[str] = None
    subscriptions: Tuple[str, ...] = ()
    documents: Mapping[str, int] = field(default_factory=dict)


class SessionSource(Protocol):
    """Read-only access to the live sessions."""

    def active_sessions(self) -> Iterable[SessionSnapshot]:
        ...


class InMemorySessionSource:
    """SessionSource fed by the host as sessions open and close."""

    def __init__(self) -> None:
        self._sessions: Dict[str, SessionSnapshot] = {}

    def put(self, session: SessionSnapshot) -> None:
        self._sessions[session.session_id] = session

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def active_sessions(self) -> List[SessionSnapshot]:
        return list(self._sessions.values())


class SessionInfo(InfoSection):
    """Provides the session-related information."""

    def __init__(self, source: SessionSource):
        self.source = source

    def describe(self) -> InfoDescription:
        return {
            "nDocuments": MetricDescription(
                MetricKind.ARRAY, "Documents published to sessions, by collection[]",
            ),
            "nSessions": MetricDescription(MetricKind.INTEGER, "Sessions"),
            "nSubs": MetricDescription(MetricKind.ARRAY, "Subscriptions, by name[]"),
            "usersWithNSessions": MetricDescription(
                MetricKind.ARRAY, "Users with N sessions[]",
            ),
        }

    def collect(self) -> InfoData:
        documents = Counter()
        subscriptions = Counter()
        sessions_per_user: Dict[str, int] = {}
        n_sessions = 0

        for session in self.source.active_sessions():
            n_sessions += 1
            for name in session.subscriptions:
                subscriptions.increment(name)
            for collection, count in session.documents.items():
                if count > 0:
                    documents.increment(collection, count)
            if session.user_id is not None:
                user = session.user_id
                sessions_per_user[user] = sessions_per_user.get(user, 0) + 1

        users_with_n_sessions = Counter()
        for count in sessions_per_user.values():
            users_with_n_sessions.increment(count)

        return {
            "nDocuments": documents,
            "nSessions": n_sessions,
            "nSubs": subscriptions,
            "usersWithNSessions": users_with_n_sessions,
        }
