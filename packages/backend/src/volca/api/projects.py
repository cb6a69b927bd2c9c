"""Project API — the project-scoped routes behind the access guard.

- GET /projects/:projectId → project detail (members)
- GET /projects/:projectId/users → list members (members)
- DELETE /projects/:projectId/users/:userId → remove a member (admin)
- POST /project-users → add a member, project_id in the body (admin)

Nested routes carry the project id in the path, body-driven routes in the
body; the guard dependency finds it in either place.
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from volca.auth.dependencies import CurrentIdentity
from volca.auth.project_access import require_project_admin, require_project_user
from volca.db.engine import get_db
from volca.errors import ErrorName, ServiceError
from volca.schemas.project import (
    ProjectMemberRead,
    ProjectRead,
    ProjectUserCreate,
    ProjectUserRead,
)
from volca.services.project_service import ProjectService, ProjectUserService
from volca.services.user_service import UserService

logger = structlog.get_logger()

router = APIRouter()


@router.get("/projects/{projectId}", response_model=ProjectRead)
async def get_project(
    projectId: uuid.UUID,
    _: CurrentIdentity = Depends(require_project_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectService(db).get(projectId)


@router.get("/projects/{projectId}/users", response_model=list[ProjectMemberRead])
async def list_project_users(
    projectId: uuid.UUID,
    _: CurrentIdentity = Depends(require_project_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectUserService(db).list(projectId)


@router.delete("/projects/{projectId}/users/{userId}", status_code=204)
async def remove_project_user(
    projectId: uuid.UUID,
    userId: uuid.UUID,
    identity: CurrentIdentity = Depends(require_project_admin),
    db: AsyncSession = Depends(get_db),
):
    """Remove a member. The admin cannot remove themselves."""
    if str(userId) == identity.user_id:
        raise ServiceError(
            name=ErrorName.VALIDATION_ERROR,
            message="The project admin cannot be removed from the project",
            status_code=400,
        )
    await ProjectUserService(db).delete(projectId, userId)
    logger.info("project.member_removed", project_id=str(projectId), user_id=str(userId))
    return Response(status_code=204)


@router.post("/project-users", response_model=ProjectUserRead, status_code=201)
async def add_project_user(
    body: ProjectUserCreate,
    _: CurrentIdentity = Depends(require_project_admin),
    db: AsyncSession = Depends(get_db),
):
    if not await UserService(db).find_by_id(body.user_id):
        raise ServiceError(
            name=ErrorName.USER_DOES_NOT_EXIST,
            message="The user does not exist",
            status_code=400,
        )
    project_user = await ProjectUserService(db).create(body.user_id, body.project_id)
    logger.info(
        "project.member_added",
        project_id=str(body.project_id),
        user_id=str(body.user_id),
    )
    return project_user
