"""User lookups and updates used by the auth flows.

This is the narrow slice of user persistence the auth core needs:
find by id, find by email, update a few columns. Registration and
profile management live outside this package.
"""

import uuid
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from volca.db.models import User


class UserService:
    """Reads and writes User rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, user_id: Union[uuid.UUID, str]) -> Optional[User]:
        if isinstance(user_id, str):
            try:
                user_id = uuid.UUID(user_id)
            except ValueError:
                return None
        return await self.db.get(User, user_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def update(self, user_id: uuid.UUID, **values) -> User:
        user = await self.db.get(User, user_id)
        for key, value in values.items():
            setattr(user, key, value)
        await self.db.commit()
        return user
