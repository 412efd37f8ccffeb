"""
Session stores.

The engine only needs key-value save/load of serialized sessions. Two
implementations are provided: an in-memory store for tests and the CLI, and
a SQL store backed by SQLAlchemy's async engine.
"""

import logging
from abc import ABC, abstractmethod

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from unified_interview.db.models import Base
from unified_interview.db.repository import SessionRepository
from unified_interview.orchestrator.schemas import SessionSnapshot

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Abstract key-value store for session snapshots."""

    @abstractmethod
    async def save(self, session_id: str, snapshot: SessionSnapshot) -> None:
        """Persist the full state of a session, replacing any previous copy."""
        ...

    @abstractmethod
    async def load(self, session_id: str) -> SessionSnapshot | None:
        """Load a session, or None if it was never saved."""
        ...

    async def close(self) -> None:
        """Release resources held by the store."""
        return None


class InMemorySessionStore(SessionStore):
    """Store that keeps serialized snapshots in a dict."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def save(self, session_id: str, snapshot: SessionSnapshot) -> None:
        self._data[session_id] = snapshot.model_dump_json()

    async def load(self, session_id: str) -> SessionSnapshot | None:
        raw = self._data.get(session_id)
        if raw is None:
            return None
        return SessionSnapshot.model_validate_json(raw)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._data

    def __len__(self) -> int:
        return len(self._data)


class SqlSessionStore(SessionStore):
    """Store backed by the `interview_sessions` table."""

    def __init__(self, database_url: str | None = None, engine: AsyncEngine | None = None) -> None:
        """
        Initialize the store.

        Args:
            database_url: SQLAlchemy async URL, e.g. `postgresql+asyncpg://...`.
            engine: Pre-built engine (takes precedence over the URL).
        """
        if engine is None:
            if not database_url:
                raise ValueError("Either database_url or engine is required")
            engine = create_async_engine(database_url)
        self._engine = engine
        self._sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    async def init_models(self) -> None:
        """Create the tables if they do not exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Session tables initialized")

    async def save(self, session_id: str, snapshot: SessionSnapshot) -> None:
        if snapshot.id != session_id:
            raise ValueError(f"Snapshot id {snapshot.id} does not match key {session_id}")
        async with self._sessionmaker() as session:
            async with session.begin():
                await SessionRepository(session).upsert_snapshot(snapshot)

    async def load(self, session_id: str) -> SessionSnapshot | None:
        async with self._sessionmaker() as session:
            return await SessionRepository(session).load_snapshot(session_id)

    async def close(self) -> None:
        await self._engine.dispose()
