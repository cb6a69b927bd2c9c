"""Project Access Guard.

Tests cover:
1. Candidate id extraction (naming variants, de-duplication, empties)
2. Membership / subscription / existence folded into one 404
3. Admin-gated access (401 for members that are not the admin)
4. The guard wired into real routes, ids from path and body
"""

import json
import uuid

import pytest

from volca.auth.dependencies import CurrentIdentity
from volca.auth.project_access import (
    ExtractionRule,
    ProjectAccessGuard,
    ProjectAccessType,
    collect_project_ids,
)
from volca.errors import ErrorName, ServiceError
from volca.services.project_service import ProjectUserService


# ═══════════════════════════════════════════════════════════
# Extraction
# ═══════════════════════════════════════════════════════════


def test_collect_reads_every_naming_convention():
    params = {
        "body": {"project_id": "a", "projectId": "b"},
        "path": {"projectId": "c", "project_id": "d"},
    }
    assert collect_project_ids(params) == ["a", "b", "c", "d"]


def test_collect_deduplicates_and_drops_empty():
    params = {
        "body": {"project_id": "p1", "projectId": ""},
        "path": {"projectId": "p1", "project_id": None},
    }
    assert collect_project_ids(params) == ["p1"]


def test_collect_with_nothing_referenced():
    assert collect_project_ids({"body": {}, "path": {}}) == []
    assert collect_project_ids({}) == []


def test_collect_with_custom_rules():
    rules = [ExtractionRule("query", "project")]
    assert collect_project_ids({"query": {"project": "q1"}}, rules) == ["q1"]


# ═══════════════════════════════════════════════════════════
# Guard (service level)
# ═══════════════════════════════════════════════════════════


async def _authorize(db_session, user, project_ids, access_type=ProjectAccessType.USER):
    identity = CurrentIdentity(user_id=str(user.id))
    await ProjectAccessGuard(db_session).authorize(identity, project_ids, access_type)


@pytest.mark.asyncio
async def test_member_passes(db_session, make_user, make_project, add_member):
    admin, member = await make_user(), await make_user()
    project = await make_project(admin)
    await add_member(member, project)

    await _authorize(db_session, member, [str(project.id)])
    await _authorize(db_session, admin, [str(project.id)], ProjectAccessType.ADMIN)


@pytest.mark.asyncio
async def test_no_candidates_passes(db_session, make_user):
    await _authorize(db_session, await make_user(), [], ProjectAccessType.ADMIN)


@pytest.mark.asyncio
@pytest.mark.parametrize("access_type", list(ProjectAccessType))
async def test_inactive_subscription_is_not_found_even_for_admin(
    db_session, make_user, make_project, access_type
):
    admin = await make_user()
    project = await make_project(admin, active=False)

    with pytest.raises(ServiceError) as exc:
        await _authorize(db_session, admin, [str(project.id)], access_type)
    assert exc.value.name == ErrorName.PROJECT_DOES_NOT_EXIST
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_non_member_is_not_found(db_session, make_user, make_project):
    admin, outsider = await make_user(), await make_user()
    project = await make_project(admin)

    with pytest.raises(ServiceError) as exc:
        await _authorize(db_session, outsider, [str(project.id)])
    assert exc.value.name == ErrorName.PROJECT_DOES_NOT_EXIST


@pytest.mark.asyncio
@pytest.mark.parametrize("project_id", [str(uuid.uuid4()), "not-a-uuid"])
async def test_missing_project_is_not_found(db_session, make_user, project_id):
    with pytest.raises(ServiceError) as exc:
        await _authorize(db_session, await make_user(), [project_id])
    assert exc.value.name == ErrorName.PROJECT_DOES_NOT_EXIST


@pytest.mark.asyncio
async def test_member_on_admin_action_is_unauthorized(
    db_session, make_user, make_project, add_member
):
    admin, member = await make_user(), await make_user()
    project = await make_project(admin)
    await add_member(member, project)

    with pytest.raises(ServiceError) as exc:
        await _authorize(db_session, member, [str(project.id)], ProjectAccessType.ADMIN)
    assert exc.value.name == ErrorName.AUTHORIZATION_FAILED
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_every_candidate_must_pass(db_session, make_user, make_project):
    user, other = await make_user(), await make_user()
    mine = await make_project(user)
    theirs = await make_project(other)

    with pytest.raises(ServiceError) as exc:
        await _authorize(db_session, user, [str(mine.id), str(theirs.id)])
    assert exc.value.name == ErrorName.PROJECT_DOES_NOT_EXIST


# ═══════════════════════════════════════════════════════════
# Guard on routes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_route_member_can_read_project(client, make_user, make_project, add_member, auth_headers):
    admin, member = await make_user(), await make_user()
    project = await make_project(admin)
    await add_member(member, project)

    r = await client.get(f"/api/v1/projects/{project.id}", headers=auth_headers(member))
    assert r.status_code == 200
    assert r.json()["id"] == str(project.id)


@pytest.mark.asyncio
async def test_route_requires_authentication(client, make_user, make_project):
    project = await make_project(await make_user())
    r = await client.get(f"/api/v1/projects/{project.id}")
    assert r.status_code == 401
    assert r.json()["name"] == "AUTHENTICATION_FAILED"


@pytest.mark.asyncio
async def test_route_inactive_subscription_404(client, make_user, make_project, auth_headers):
    admin = await make_user()
    project = await make_project(admin, active=False)

    r = await client.get(f"/api/v1/projects/{project.id}", headers=auth_headers(admin))
    assert r.status_code == 404
    assert r.json() == {"name": "PROJECT_DOES_NOT_EXIST", "message": "The project does not exist"}


@pytest.mark.asyncio
async def test_route_member_cannot_remove_users(
    client, make_user, make_project, add_member, auth_headers
):
    admin, member = await make_user(), await make_user()
    project = await make_project(admin)
    await add_member(member, project)

    r = await client.delete(
        f"/api/v1/projects/{project.id}/users/{admin.id}", headers=auth_headers(member)
    )
    assert r.status_code == 401
    assert r.json()["name"] == "AUTHORIZATION_FAILED"


@pytest.mark.asyncio
async def test_route_body_project_id_is_checked(client, make_user, make_project, auth_headers):
    """Body-driven route: the id only appears in the request body."""
    admin, outsider, newcomer = await make_user(), await make_user(), await make_user()
    project = await make_project(admin)

    r = await client.post(
        "/api/v1/project-users",
        json={"project_id": str(project.id), "user_id": str(newcomer.id)},
        headers=auth_headers(outsider),
    )
    assert r.status_code == 404

    r = await client.post(
        "/api/v1/project-users",
        json={"project_id": str(project.id), "user_id": str(newcomer.id)},
        headers=auth_headers(admin),
    )
    assert r.status_code == 201
    assert r.json()["user_id"] == str(newcomer.id)


@pytest.mark.asyncio
@pytest.mark.parametrize("content_type", ["application/merge-patch+json", "text/plain"])
async def test_route_body_project_id_checked_for_any_content_type(
    client, db_session, make_user, make_project, auth_headers, content_type
):
    """FastAPI decodes +json media types, so the guard has to read them too."""
    admin, outsider = await make_user(), await make_user()
    project = await make_project(admin)

    r = await client.post(
        "/api/v1/project-users",
        content=json.dumps({"project_id": str(project.id), "user_id": str(outsider.id)}),
        headers={**auth_headers(outsider), "content-type": content_type},
    )
    assert r.status_code == 404
    assert await ProjectUserService(db_session).get(outsider.id, project.id) is None


@pytest.mark.asyncio
async def test_route_duplicate_candidates_checked_once(
    client, make_user, make_project, auth_headers, monkeypatch
):
    """project_id in the body and projectId in the path name the same project."""
    admin = await make_user()
    project = await make_project(admin)

    calls = []
    original_get = ProjectUserService.get

    async def counting_get(self, user_id, project_id):
        calls.append(str(project_id))
        return await original_get(self, user_id, project_id)

    monkeypatch.setattr(ProjectUserService, "get", counting_get)

    r = await client.request(
        "GET",
        f"/api/v1/projects/{project.id}",
        json={"project_id": str(project.id)},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200
    assert calls == [str(project.id)]


@pytest.mark.asyncio
async def test_route_conflicting_candidates_fail(
    client, make_user, make_project, auth_headers
):
    """Member of the path project, but the body names someone else's project."""
    user, other = await make_user(), await make_user()
    mine = await make_project(user)
    theirs = await make_project(other)

    r = await client.request(
        "GET",
        f"/api/v1/projects/{mine.id}",
        json={"projectId": str(theirs.id)},
        headers=auth_headers(user),
    )
    assert r.status_code == 404
