"""Project and project-membership lookups.

Service layer separates business logic from HTTP routing.
The Project Access Guard only ever reads through get(); the membership
writes (create/delete) back the invitation-accept and member-removal
routes.
"""

import uuid
from typing import Optional, Union

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from volca.db.models import Project, ProjectUser, User

IdLike = Union[uuid.UUID, str]


def _as_uuid(value: IdLike) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class ProjectService:
    """Business logic for projects."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, project_id: IdLike) -> Optional[Project]:
        pid = _as_uuid(project_id)
        if pid is None:
            return None
        return await self.db.get(Project, pid)


class ProjectUserService:
    """Business logic for project membership edges."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: IdLike, project_id: IdLike) -> Optional[ProjectUser]:
        uid, pid = _as_uuid(user_id), _as_uuid(project_id)
        if uid is None or pid is None:
            return None
        result = await self.db.execute(
            select(ProjectUser).where(
                ProjectUser.user_id == uid,
                ProjectUser.project_id == pid,
            )
        )
        return result.scalars().first()

    async def list(self, project_id: IdLike) -> list[User]:
        """Users that belong to the project, ordered by email."""
        pid = _as_uuid(project_id)
        if pid is None:
            return []
        result = await self.db.execute(
            select(User)
            .join(ProjectUser, ProjectUser.user_id == User.id)
            .where(ProjectUser.project_id == pid)
            .order_by(User.email)
        )
        return list(result.scalars().all())

    async def create(self, user_id: uuid.UUID, project_id: uuid.UUID) -> ProjectUser:
        """Add a membership edge. Returns the existing edge if present."""
        existing = await self.get(user_id, project_id)
        if existing:
            return existing
        project_user = ProjectUser(user_id=user_id, project_id=project_id)
        self.db.add(project_user)
        await self.db.commit()
        return project_user

    async def delete(self, project_id: IdLike, user_id: IdLike) -> int:
        """Remove a membership edge. Returns the number of rows removed."""
        uid, pid = _as_uuid(user_id), _as_uuid(project_id)
        if uid is None or pid is None:
            return 0
        result = await self.db.execute(
            delete(ProjectUser).where(
                ProjectUser.user_id == uid,
                ProjectUser.project_id == pid,
            )
        )
        await self.db.commit()
        return result.rowcount
