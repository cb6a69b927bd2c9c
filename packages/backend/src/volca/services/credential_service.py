"""Credential verifier — passwords, reset links, verification links.

Public messages are deliberately vague where precision would help an
attacker:
- a failed login never says whether the email exists
- a failed reset or verification never says why the link is bad
The precise cause goes into ServiceError.debug, which is only logged.
"""

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from volca.auth import jwt as tokens
from volca.auth.password import DUMMY_HASH, hash_password, verify_password
from volca.db.models import User
from volca.errors import ErrorName, ServiceError
from volca.services.token_service import TokenIssuer
from volca.services.user_service import UserService

logger = structlog.get_logger()

LOGIN_FAILED_MESSAGE = "incorrect username or password"
RESET_LINK_INVALID_MESSAGE = "Your reset password link is either invalid or expired"
VERIFY_LINK_INVALID_MESSAGE = "Your verify user link is either invalid or expired"


def _login_failed(debug: str) -> ServiceError:
    return ServiceError(
        name=ErrorName.AUTHENTICATION_FAILED,
        message=LOGIN_FAILED_MESSAGE,
        status_code=401,
        debug=debug,
    )


def _verify_link_invalid(debug: str) -> ServiceError:
    return ServiceError(
        name=ErrorName.AUTHORIZATION_FAILED,
        message=VERIFY_LINK_INVALID_MESSAGE,
        status_code=401,
        debug=debug,
    )


class CredentialVerifier:
    """Checks passwords and consumes reset / verification tokens."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserService(db)
        self.tokens = TokenIssuer(db)

    async def verify_password(self, email: str, password: str) -> User:
        user = await self.users.find_by_email(email)

        if not user:
            # Same bcrypt cost as a real check.
            verify_password(password, DUMMY_HASH)
            raise _login_failed("Could not find a user for the given username")

        if not user.password:
            verify_password(password, DUMMY_HASH)
            raise _login_failed("The user does not have a configured password")

        if not verify_password(password, user.password):
            raise _login_failed("The password was incorrect")

        return user

    async def generate_password_reset_token(self, email: str) -> str:
        user = await self.users.find_by_email(email)
        if not user:
            raise ServiceError(
                name=ErrorName.USER_DOES_NOT_EXIST,
                message="The user does not exist",
                status_code=400,
                debug="Could not find a user when creating password reset token",
            )
        return self.tokens.issue_password_reset_token(user)

    async def reset_password(self, password: str, reset_token: str) -> None:
        """Set a new password using a reset token.

        The token is signed with the subject's current password hash, so
        the subject has to be read from the unverified claims before the
        signature can be checked at all.
        """
        try:
            subject = tokens.decode_token(reset_token).get("sub")
        except tokens.TokenError as e:
            raise ServiceError(
                name=ErrorName.VALIDATION_ERROR,
                message="Invalid reset token",
                status_code=400,
                debug=str(e),
            )

        if not isinstance(subject, str) or not subject:
            raise ServiceError(
                name=ErrorName.VALIDATION_ERROR,
                message="Invalid reset token",
                status_code=400,
                debug="The token did not include a string subject",
            )

        user = await self.users.find_by_email(subject)
        if not user:
            raise ServiceError(
                name=ErrorName.USER_DOES_NOT_EXIST,
                message="Invalid reset token",
                status_code=400,
                debug="A user with the supplied reset password token subject does not exist",
            )
        if not user.password:
            raise ServiceError(
                name=ErrorName.MISSING_PROPERTY_ERROR,
                message="Invalid user",
                status_code=400,
                debug="The subject of the reset password request does not have a password to reset",
            )

        try:
            payload = tokens.verify_token(reset_token, secret=user.password)
        except tokens.TokenError as e:
            raise ServiceError(
                name=ErrorName.AUTHORIZATION_FAILED,
                message=RESET_LINK_INVALID_MESSAGE,
                status_code=401,
                debug=str(e),
            )
        if payload.get("type") != tokens.PASSWORD_RESET:
            raise ServiceError(
                name=ErrorName.AUTHORIZATION_FAILED,
                message=RESET_LINK_INVALID_MESSAGE,
                status_code=401,
                debug=f"Expected a password reset token, got type={payload.get('type')!r}",
            )

        await self.users.update(user.id, password=hash_password(password))
        logger.info("auth.password_reset", user_id=str(user.id))

    async def mark_user_as_verified(self, verify_token: str) -> None:
        try:
            payload = tokens.verify_token(verify_token)
        except tokens.TokenError as e:
            raise _verify_link_invalid(str(e))

        if payload.get("type") != tokens.EMAIL_VERIFICATION:
            raise _verify_link_invalid(
                f"Expected an email verification token, got type={payload.get('type')!r}"
            )

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise _verify_link_invalid("The verify token was missing a subject claim")

        user = await self.users.find_by_email(subject)
        if not user:
            raise _verify_link_invalid(
                "Could not find the corresponding user defined in the verify account token"
            )

        if user.verified_at:
            return

        await self.users.update(user.id, verified_at=datetime.now(timezone.utc))
        logger.info("auth.user_verified", user_id=str(user.id))
