"""Durable keyed storage for project records."""
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.database import async_session_maker
from app.models.project import Project


class ProjectStore(Protocol):
    """Read-modify-write store of project records keyed by id."""

    async def get(self, project_id: str) -> Optional[Project]:
        ...

    async def upsert(self, project: Project) -> None:
        ...


class SqlProjectStore:
    """
    ProjectStore backed by the SQLAlchemy database.

    Each call uses its own session, so returned projects are detached
    snapshots: callers mutate them and hand the whole record back to
    ``upsert``.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession] = async_session_maker):
        self._session_maker = session_maker

    async def get(self, project_id: str) -> Optional[Project]:
        async with self._session_maker() as session:
            return await session.get(Project, project_id)

    async def upsert(self, project: Project) -> None:
        async with self._session_maker() as session:
            await session.merge(project)
            await session.commit()


# Global store instance
project_store = SqlProjectStore()
