"""
Repository pattern for database operations.

Provides a clean abstraction over SQLAlchemy for CRUD operations.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unified_interview.db.models import Base, SessionModel
from unified_interview.orchestrator.schemas import SessionSnapshot

T = TypeVar("T", bound=Base)


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    @property
    @abstractmethod
    def _model_class(self) -> type[T]:
        """Get the model class for this repository."""
        ...

    async def get_by_id(self, entity_id: Any) -> T | None:
        """
        Get an entity by its ID.

        Args:
            entity_id: The entity's primary key.

        Returns:
            The entity if found, None otherwise.
        """
        return await self._session.get(self._model_class, entity_id)

    async def create(self, entity: T) -> T:
        """
        Create a new entity.

        Args:
            entity: The entity to create.

        Returns:
            The created entity.
        """
        self._session.add(entity)
        await self._session.flush()
        await self._session.refresh(entity)
        return entity

    async def update(self, entity: T) -> T:
        """Flush pending changes to an entity and reload it."""
        await self._session.flush()
        await self._session.refresh(entity)
        return entity


class SessionRepository(BaseRepository[SessionModel]):
    """Repository for interview session operations."""

    @property
    def _model_class(self) -> type[SessionModel]:
        """Get the model class."""
        return SessionModel

    async def upsert_snapshot(self, snapshot: SessionSnapshot) -> SessionModel:
        """
        Create or update the row for a session snapshot.

        Args:
            snapshot: Serializable session state.

        Returns:
            The stored session model.
        """
        state = snapshot.model_dump(mode="json")
        existing = await self.get_by_id(snapshot.id)
        if existing:
            existing.status = snapshot.status.value
            existing.state = state
            return await self.update(existing)

        return await self.create(
            SessionModel(
                id=snapshot.id,
                user_id=snapshot.user_id,
                status=snapshot.status.value,
                state=state,
            )
        )

    async def load_snapshot(self, session_id: str) -> SessionSnapshot | None:
        """Load and validate the stored state of a session."""
        model = await self.get_by_id(session_id)
        if model is None:
            return None
        return SessionSnapshot.model_validate(model.state)

    async def get_by_user(self, user_id: str, limit: int = 100) -> list[SessionModel]:
        """
        Get all sessions for a user, newest first.

        Args:
            user_id: Owner of the sessions.
            limit: Maximum number to return.

        Returns:
            List of sessions.
        """
        stmt = (
            select(SessionModel)
            .where(SessionModel.user_id == user_id)
            .order_by(SessionModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
