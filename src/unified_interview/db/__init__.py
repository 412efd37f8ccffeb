"""
Database module for persistence.

Provides SQLAlchemy models, the repository pattern and the session stores
the engine saves to.
"""

from unified_interview.db.models import Base, SessionModel
from unified_interview.db.repository import SessionRepository
from unified_interview.db.store import InMemorySessionStore, SessionStore, SqlSessionStore

__all__ = [
    "Base",
    "SessionModel",
    "SessionRepository",
    "SessionStore",
    "InMemorySessionStore",
    "SqlSessionStore",
]
