"""Protocol for session persistence."""

from typing import Protocol

from taskpilot.core.domain.models import Message, Session, SessionSummary


class SessionStoreProtocol(Protocol):
    """
    Create, read, append to and list conversation sessions.

    Appends to one session are serialized; listing never blocks on writers
    and may return a point-in-time snapshot. Sessions are never deleted.
    """

    async def create(self) -> Session:
        ...

    async def get(self, session_id: str) -> Session:
        """Raises SessionNotFoundError if the id is unknown."""
        ...

    async def append(self, session_id: str, messages: list[Message]) -> Session:
        """Raises SessionNotFoundError if the id is unknown."""
        ...

    async def list(self) -> list[SessionSummary]:
        """Summaries ordered by updated_at, most recent first."""
        ...
