"""
File-Based Session Store
========================

Persists each session as ``{session_dir}/{session_id}.json``.

Responsibilities:
- Atomic writes (temp file + rename) so readers never see a partial file
- One asyncio lock per session id to serialize appends
- Lock-free listing over a point-in-time view of the directory
- Graceful handling of corrupt session files when listing
- I/O and decode failures surface as ``SessionStorageError``
"""

import asyncio
import re
import uuid
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import aiofiles
import aiofiles.os
import structlog
from pydantic import ValidationError

from taskpilot.core.domain.errors import SessionNotFoundError, SessionStorageError
from taskpilot.core.domain.models import Message, Session, SessionSummary
from taskpilot.infrastructure.persistence.memory_session_store import (
    append_messages,
    sort_by_recency,
    utc_now,
)

_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class FileSessionStore:
    """
    JSON file session store.

    Thread Safety:
        Appends are serialized per session within one event loop. Separate
        processes writing the same session are not coordinated.
    """

    def __init__(self, session_dir: str | Path, clock: Callable[[], datetime] = utc_now):
        self.session_dir = Path(session_dir).expanduser()
        self.session_dir.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, asyncio.Lock] = {}
        self._clock = clock
        self.logger = structlog.get_logger().bind(component="file_session_store")

    def _get_lock(self, session_id: str) -> asyncio.Lock:
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    def _session_path(self, session_id: str) -> Path:
        return self.session_dir / f"{session_id}.json"

    async def _write(self, session: Session) -> None:
        path = self._session_path(session.id)
        temp_path = path.with_name(f".{session.id}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(session.model_dump_json(indent=2))
            await aiofiles.os.replace(temp_path, path)
        except OSError as exc:
            if temp_path.exists():
                temp_path.unlink()
            raise SessionStorageError(session.id, f"{type(exc).__name__}: {exc}") from exc
        self.logger.debug("session_written", session_id=session.id, path=str(path))

    async def _read(self, path: Path) -> Session:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                content = await f.read()
            return Session.model_validate_json(content)
        except (OSError, ValidationError) as exc:
            raise SessionStorageError(path.stem, f"{type(exc).__name__}: {exc}") from exc

    async def create(self) -> Session:
        now = self._clock()
        session = Session(id=str(uuid.uuid4()), created_at=now, updated_at=now)
        async with self._get_lock(session.id):
            await self._write(session)
        self.logger.info("session_created", session_id=session.id)
        return session

    async def get(self, session_id: str) -> Session:
        if not _SESSION_ID_PATTERN.match(session_id):
            raise SessionNotFoundError(session_id)
        path = self._session_path(session_id)
        if not path.exists():
            raise SessionNotFoundError(session_id)
        session = await self._read(path)
        self.logger.debug("session_loaded", session_id=session_id)
        return session

    async def append(self, session_id: str, messages: list[Message]) -> Session:
        async with self._get_lock(session_id):
            current = await self.get(session_id)
            updated = append_messages(current, messages, self._clock())
            await self._write(updated)
            return updated

    async def list(self) -> list[SessionSummary]:
        summaries = []
        for path in sorted(self.session_dir.glob("*.json")):
            try:
                session = await self._read(path)
            except SessionStorageError as e:
                self.logger.warning("session_file_unreadable", file=path.name, error=e.message)
                continue
            summaries.append(session.summary())
        return sort_by_recency(summaries)
