"""Project Access Guard — may this identity act on these projects?

Runs after authentication and before the route handler:

1. Collect every project id the request mentions. Call sites are not
   consistent about naming (nested routes use a path parameter, body
   driven routes a body field, both in snake_case or camelCase), so the
   places to look are an ordered list of extraction rules applied to a
   generic {source: params} map.
2. For each distinct id: the project must exist, the caller must be a
   member, and the project must have an active subscription. All three
   failures answer 404 PROJECT_DOES_NOT_EXIST so a non-member cannot
   tell which one it was.
3. Admin-gated routes additionally require the caller to be the
   project's admin (401 AUTHORIZATION_FAILED).

No ids → nothing project-scoped is referenced → pass. The guard never
writes.
"""

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from volca.auth.dependencies import CurrentIdentity, get_current_user
from volca.db.engine import get_db
from volca.errors import ErrorName, ServiceError
from volca.services.project_service import ProjectService, ProjectUserService

logger = structlog.get_logger()


class ProjectAccessType(str, Enum):
    ADMIN = "admin"
    USER = "user"


@dataclass(frozen=True)
class ExtractionRule:
    source: str  # "body" or "path"
    key: str


PROJECT_ID_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule("body", "project_id"),
    ExtractionRule("body", "projectId"),
    ExtractionRule("path", "projectId"),
    ExtractionRule("path", "project_id"),
)


def collect_project_ids(
    params: Mapping[str, Mapping],
    rules: Iterable[ExtractionRule] = PROJECT_ID_RULES,
) -> list[str]:
    """Apply extraction rules to request params.

    Returns distinct, non-empty ids in rule order.
    """
    ids: list[str] = []
    for rule in rules:
        value = (params.get(rule.source) or {}).get(rule.key)
        if value is None:
            continue
        value = str(value).strip()
        if value and value not in ids:
            ids.append(value)
    return ids


class ProjectAccessGuard:
    """Checks membership, subscription and (optionally) admin ownership."""

    def __init__(self, db: AsyncSession):
        self.projects = ProjectService(db)
        self.project_users = ProjectUserService(db)

    async def authorize(
        self,
        identity: CurrentIdentity,
        project_ids: Iterable[str],
        access_type: ProjectAccessType,
    ) -> None:
        for project_id in project_ids:
            await self._authorize_one(identity, project_id, access_type)

    async def _authorize_one(
        self,
        identity: CurrentIdentity,
        project_id: str,
        access_type: ProjectAccessType,
    ) -> None:
        project = await self.projects.get(project_id)
        project_user = await self.project_users.get(identity.user_id, project_id)

        if not project or not project_user or not project.has_active_subscription:
            logger.info(
                "project_access.denied",
                user_id=identity.user_id,
                project_id=project_id,
                project_found=project is not None,
                member=project_user is not None,
            )
            raise ServiceError(
                name=ErrorName.PROJECT_DOES_NOT_EXIST,
                message="The project does not exist",
                status_code=404,
            )

        if access_type == ProjectAccessType.ADMIN and str(project.admin_id) != identity.user_id:
            logger.info(
                "project_access.not_admin",
                user_id=identity.user_id,
                project_id=project_id,
            )
            raise ServiceError(
                name=ErrorName.AUTHORIZATION_FAILED,
                message="The user is not authorized for this project",
                status_code=401,
            )


async def _json_body(request: Request) -> Mapping:
    """Request body as a mapping; anything but a JSON object counts as empty.

    The body is parsed whatever the Content-Type says. FastAPI decodes any
    JSON-ish media type (``application/*+json``, or no header at all), so
    the guard must see every project id the route handler could see.
    """
    if not await request.body():
        return {}
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


def project_access(access_type: ProjectAccessType):
    """Build a FastAPI dependency that guards a route at access_type."""

    async def dependency(
        request: Request,
        identity: CurrentIdentity = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> CurrentIdentity:
        params = {"body": await _json_body(request), "path": request.path_params}
        project_ids = collect_project_ids(params)
        await ProjectAccessGuard(db).authorize(identity, project_ids, access_type)
        return identity

    return dependency


require_project_user = project_access(ProjectAccessType.USER)
require_project_admin = project_access(ProjectAccessType.ADMIN)
