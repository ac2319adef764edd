"""Unit-of-work scope for mutating a project's assignments.

A unit of work holds the project's lock for its whole duration and commits
the session on success or rolls it back on any exception, so readers never
see a cleared primary without its replacement or a half-written assignment.
Read paths (list, available, preview) never enter a unit of work.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from workbench.logging_config import get_logger

logger = get_logger(__name__)


class ProjectLocks:
    """Registry of one asyncio.Lock per project id."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def for_project(self, project_id: str) -> asyncio.Lock:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[project_id] = lock
        return lock

    def discard(self, project_id: str) -> None:
        """Forget a project's lock (after the project is deleted)."""
        lock = self._locks.get(project_id)
        if lock is not None and not lock.locked():
            del self._locks[project_id]


# Shared by every request in the process
default_locks = ProjectLocks()


@asynccontextmanager
async def unit_of_work(
    session: AsyncSession, project_id: str, locks: ProjectLocks = default_locks
) -> AsyncGenerator[AsyncSession, None]:
    """Run a block under the project's lock as one transaction."""
    async with locks.for_project(project_id):
        try:
            yield session
            await session.commit()
        except Exception:
            logger.debug(f"Rolling back unit of work for project {project_id}")
            await session.rollback()
            raise
