"""Session manager — login sessions backed by refresh-token rows.

A session has two states, Active -> Expired, and only moves one way.
Logging out does not delete the row or flag it revoked; it sets
expires_at to now, which makes "revoked" and "expired" the same state.

refresh() mints a new access token but keeps the refresh token as is:
the same opaque value stays usable until its own expiry or logout.
Concurrent refreshes with one token are not fenced; each gets its own
access token.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from volca.config import settings
from volca.db.models import RefreshToken, User
from volca.errors import ErrorName, ServiceError
from volca.services.token_service import AccessToken, TokenIssuer
from volca.services.user_service import UserService

logger = structlog.get_logger()


@dataclass(frozen=True)
class Session:
    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True)
class CookieSettings:
    secure: bool
    http_only: bool
    same_site: str
    expires: datetime
    domain: Optional[str] = None


class SessionManager:
    """Creates, refreshes and expires login sessions."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tokens = TokenIssuer(db)
        self.users = UserService(db)

    async def create_session(self, user: User) -> Session:
        session_id = uuid.uuid4()
        access = self.tokens.issue_access_token(user)
        refresh_token = await self.tokens.issue_refresh_token(user, session_id)

        logger.info("session.created", user_id=str(user.id), session_id=str(session_id))
        return Session(
            access_token=access.access_token,
            refresh_token=refresh_token,
            expires_in=access.expires_in,
        )

    async def refresh(self, token: str) -> AccessToken:
        row = await self._find(token) if token else None
        if not row:
            raise ServiceError(
                name=ErrorName.AUTHORIZATION_FAILED,
                message="Invalid or missing refresh token",
                status_code=401,
                debug="The attached refresh token does not exist",
            )

        if row.expires_at <= datetime.now(timezone.utc):
            raise ServiceError(
                name=ErrorName.AUTHORIZATION_FAILED,
                message="Expired refresh token",
                status_code=401,
                debug="The attached refresh token is expired",
            )

        user = await self.users.find_by_id(row.subject)
        if not user:
            raise ServiceError(
                name=ErrorName.AUTHORIZATION_FAILED,
                message="User does not exist",
                status_code=401,
                debug="The user specified in the refresh token does not exist",
            )

        logger.info("session.refreshed", user_id=str(user.id), session_id=str(row.session_id))
        return self.tokens.issue_access_token(user)

    async def expire(self, token: str) -> None:
        """Log out. Unknown tokens are ignored."""
        row = await self._find(token) if token else None
        if not row:
            return

        now = datetime.now(timezone.utc)
        # Never push an earlier expiry forward.
        if row.expires_at > now:
            row.expires_at = now
            await self.db.commit()
        logger.info("session.expired", user_id=str(row.subject), session_id=str(row.session_id))

    def cookie_settings(self) -> CookieSettings:
        """Cookie attributes for transporting the refresh token."""
        expires = datetime.now(timezone.utc) + timedelta(
            seconds=settings.refresh_token_expire_seconds
        )
        return CookieSettings(
            secure=not settings.is_local,
            http_only=True,
            same_site="lax",
            expires=expires,
            domain=None if settings.is_local else settings.app_domain,
        )

    async def _find(self, token: str) -> Optional[RefreshToken]:
        result = await self.db.execute(
            select(RefreshToken).where(RefreshToken.token == token)
        )
        return result.scalars().first()
