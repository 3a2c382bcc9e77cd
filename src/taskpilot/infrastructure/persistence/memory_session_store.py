"""In-memory session store."""

import asyncio
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from taskpilot.core.domain.errors import SessionNotFoundError
from taskpilot.core.domain.models import Message, Session, SessionSummary


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySessionStore:
    """
    Session store backed by a dictionary.

    Sessions handed out are deep copies, so callers never observe or cause
    mutation outside ``append``.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._clock = clock
        self.logger = structlog.get_logger().bind(component="memory_session_store")

    def _get_lock(self, session_id: str) -> asyncio.Lock:
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    async def create(self) -> Session:
        now = self._clock()
        session = Session(id=str(uuid.uuid4()), created_at=now, updated_at=now)
        self._sessions[session.id] = session
        self.logger.info("session_created", session_id=session.id)
        return session.model_copy(deep=True)

    async def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session.model_copy(deep=True)

    async def append(self, session_id: str, messages: list[Message]) -> Session:
        async with self._get_lock(session_id):
            current = self._sessions.get(session_id)
            if current is None:
                raise SessionNotFoundError(session_id)

            updated = append_messages(current, messages, self._clock())
            self._sessions[session_id] = updated
            self.logger.debug(
                "session_appended",
                session_id=session_id,
                appended=len(messages),
                message_count=updated.message_count,
            )
            return updated.model_copy(deep=True)

    async def list(self) -> list[SessionSummary]:
        snapshot = list(self._sessions.values())
        return sort_by_recency([session.summary() for session in snapshot])


def append_messages(session: Session, messages: list[Message], now: datetime) -> Session:
    """Return a copy of ``session`` with ``messages`` appended and positioned."""
    start = len(session.transcript)
    positioned = [
        message.model_copy(update={"position": start + offset})
        for offset, message in enumerate(messages)
    ]
    transcript = session.transcript + positioned
    return session.model_copy(
        update={
            "transcript": transcript,
            "message_count": len(transcript),
            "updated_at": now,
        }
    )


def sort_by_recency(summaries: list[SessionSummary]) -> list[SessionSummary]:
    return sorted(summaries, key=lambda summary: summary.updated_at, reverse=True)
