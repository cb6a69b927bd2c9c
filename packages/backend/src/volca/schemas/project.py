"""Pydantic schemas for projects and project membership."""

import uuid
from datetime import datetime

from pydantic import BaseModel


class ProjectRead(BaseModel):
    id: uuid.UUID
    name: str
    admin_id: uuid.UUID
    has_active_subscription: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ProjectMemberRead(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str

    model_config = {"from_attributes": True}


class ProjectUserCreate(BaseModel):
    project_id: uuid.UUID
    user_id: uuid.UUID


class ProjectUserRead(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    user_id: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True}
