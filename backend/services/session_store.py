"""
In-memory store of live design sessions.

Each entry owns one SessionController and the GenerationClient it talks
to. Sessions belong to the user that created them; lookups by anyone else
behave exactly like a missing session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from backend.config import settings
from backend.services.generation_client import GenerationClient, GenerationConfig, build_generation_client
from engine.kernel.session import SessionController
from engine.kernel.types import Session

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    id: UUID
    user_id: str
    controller: SessionController
    client: GenerationClient
    project_id: UUID | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_used: datetime = field(default_factory=lambda: datetime.now(UTC))

    def touch(self) -> None:
        self.last_used = datetime.now(UTC)


class SessionStore:
    """Live sessions keyed by id."""

    def __init__(
        self,
        config: GenerationConfig | None = None,
        max_per_user: int | None = None,
        free_credits: int | None = None,
    ):
        self._config = config
        self._max_per_user = max_per_user or settings.MAX_SESSIONS_PER_USER
        self._free_credits = settings.FREE_CREDITS if free_credits is None else free_credits
        self._sessions: dict[UUID, SessionEntry] = {}

    @property
    def config(self) -> GenerationConfig:
        # Resolved lazily so tests can swap settings before first use
        if self._config is None:
            self._config = GenerationConfig.from_settings()
        return self._config

    def create(self, user_id: str, client: GenerationClient | None = None) -> SessionEntry:
        """
        Open a new session for a user.

        When the user already holds the maximum number of sessions, the least
        recently used one is evicted.
        """
        owned = sorted(
            (e for e in self._sessions.values() if e.user_id == user_id),
            key=lambda e: e.last_used,
        )
        while len(owned) >= self._max_per_user:
            evicted = owned.pop(0)
            self._sessions.pop(evicted.id, None)
            logger.info("Evicted session %s for user %s (limit %d)", evicted.id, user_id, self._max_per_user)

        client = client or build_generation_client(self.config)
        session = Session(credits_remaining=self._free_credits)
        entry = SessionEntry(
            id=uuid4(),
            user_id=user_id,
            controller=SessionController(session, client),
            client=client,
        )
        self._sessions[entry.id] = entry
        logger.info("Session created: %s (user %s)", entry.id, user_id)
        return entry

    def get(self, session_id: UUID, user_id: str) -> SessionEntry | None:
        """Return the session if it exists and belongs to user_id."""
        entry = self._sessions.get(session_id)
        if entry is None or entry.user_id != user_id:
            return None
        entry.touch()
        return entry

    def delete(self, session_id: UUID, user_id: str) -> bool:
        entry = self.get(session_id, user_id)
        if entry is None:
            return False
        del self._sessions[session_id]
        # Anything still in flight for this session is now stale
        entry.controller.session.request_seq += 1
        return True

    def set_api_key(self, entry: SessionEntry, api_key: str) -> GenerationClient:
        """Re-create the session's client with a user-supplied key."""
        client = build_generation_client(entry.client.config.with_api_key(api_key))
        entry.client = client
        entry.controller.client = client
        return client

    def cleanup_idle(self, max_idle_minutes: int | None = None) -> int:
        """
        Evict sessions idle for longer than max_idle_minutes.

        Returns:
            Number of sessions evicted
        """
        idle = timedelta(minutes=max_idle_minutes or settings.SESSION_IDLE_MINUTES)
        cutoff = datetime.now(UTC) - idle
        stale = [sid for sid, e in self._sessions.items() if e.last_used < cutoff]
        for sid in stale:
            del self._sessions[sid]
        if stale:
            logger.info("Evicted %d idle sessions", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)


# Global session store instance
session_store = SessionStore()
