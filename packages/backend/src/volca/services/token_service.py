"""Token issuer — builds the four token kinds.

| kind               | form       | secret               | lifetime |
|--------------------|------------|----------------------|----------|
| access             | JWT        | settings.jwt_secret  | 15 min   |
| refresh            | opaque     | — (stored row)       | 1 year   |
| password reset     | JWT        | user's password hash | 10 min   |
| email verification | JWT        | settings.jwt_secret  | 7 days   |

Signing a reset token with the current password hash means no
bookkeeping is needed to revoke it: once the password changes, the
secret is gone and every outstanding reset link stops verifying.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from volca.auth import jwt as tokens
from volca.config import settings
from volca.db.models import RefreshToken, User
from volca.errors import ErrorName, ServiceError

logger = structlog.get_logger()


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    expires_in: int


class TokenIssuer:
    """Issues access, refresh, password-reset and verification tokens."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def issue_access_token(self, user: User) -> AccessToken:
        expires_in = settings.access_token_expire_seconds
        token = tokens.create_token(
            {"sub": str(user.id), "type": tokens.ACCESS},
            expires_in=expires_in,
        )
        return AccessToken(access_token=token, expires_in=expires_in)

    async def issue_refresh_token(self, user: User, session_id: uuid.UUID) -> str:
        """Persist a new opaque refresh token bound to session_id."""
        token = tokens.generate_opaque_token()
        expires_at = datetime.now(timezone.utc) + timedelta(
            seconds=settings.refresh_token_expire_seconds
        )
        self.db.add(
            RefreshToken(
                session_id=session_id,
                subject=user.id,
                token=token,
                expires_at=expires_at,
            )
        )
        await self.db.commit()
        return token

    def issue_password_reset_token(self, user: User) -> str:
        if not user.password:
            raise ServiceError(
                name=ErrorName.MISSING_PROPERTY_ERROR,
                message="The user does not have a password",
                status_code=400,
                debug="The password property on the user was not set",
            )
        token = tokens.create_token(
            {"sub": user.email, "type": tokens.PASSWORD_RESET},
            expires_in=settings.password_reset_expire_seconds,
            secret=user.password,
        )
        logger.info("token.password_reset_issued", user_id=str(user.id))
        return token

    def issue_email_verification_token(self, user: User) -> str:
        return tokens.create_token(
            {"sub": user.email, "type": tokens.EMAIL_VERIFICATION},
            expires_in=settings.email_verification_expire_seconds,
        )
