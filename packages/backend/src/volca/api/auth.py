"""Auth API — login, refresh, logout, password reset, email verification.

- POST /auth/login → email/password → access token + refresh cookie
- POST /auth/refresh → refresh cookie (or body) → new access token
- POST /auth/logout → expire the refresh token, clear the cookie
- POST /auth/reset-password/request → mail a reset link
- POST /auth/reset-password → consume a reset link
- POST /auth/verify → consume an email-verification link
- GET /auth/me → current user info

Routes stay thin: every decision is made in the services, and every
failure is a ServiceError rendered by the app-level handler.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from volca.auth.dependencies import CurrentIdentity, get_current_user
from volca.config import settings
from volca.db.engine import get_db
from volca.errors import ErrorName, ServiceError
from volca.schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    PasswordReset,
    PasswordResetRequest,
    RefreshRequest,
    UserRead,
    VerifyRequest,
)
from volca.services.communications import CommunicationsService
from volca.services.credential_service import CredentialVerifier
from volca.services.session_service import SessionManager
from volca.services.user_service import UserService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


def get_communications(request: Request) -> CommunicationsService:
    return request.app.state.communications


def _refresh_token_from(request: Request, body: Optional[RefreshRequest]) -> str:
    if body and body.refresh_token:
        return body.refresh_token
    return request.cookies.get(settings.refresh_cookie_name, "")


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AccessTokenResponse)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Login with email and password → access token + refresh cookie."""
    try:
        user = await CredentialVerifier(db).verify_password(body.email, body.password)
    except ServiceError as e:
        logger.info("auth.login_failed", reason=e.debug)
        raise

    sessions = SessionManager(db)
    session = await sessions.create_session(user)
    cookie = sessions.cookie_settings()
    response.set_cookie(
        settings.refresh_cookie_name,
        value=session.refresh_token,
        expires=cookie.expires,
        httponly=cookie.http_only,
        secure=cookie.secure,
        samesite=cookie.same_site,
        domain=cookie.domain,
    )
    return AccessTokenResponse(
        access_token=session.access_token,
        expires_in=session.expires_in,
    )


# ─── Refresh / logout ───────────────────────────────────


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    request: Request,
    body: Optional[RefreshRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a refresh token for a new access token."""
    token = _refresh_token_from(request, body)
    access = await SessionManager(db).refresh(token)
    return AccessTokenResponse(
        access_token=access.access_token,
        expires_in=access.expires_in,
    )


@router.post("/logout", status_code=204)
async def logout(
    request: Request,
    body: Optional[RefreshRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    """Expire the session behind the refresh token. Always succeeds."""
    sessions = SessionManager(db)
    await sessions.expire(_refresh_token_from(request, body))

    cookie = sessions.cookie_settings()
    response = Response(status_code=204)
    response.delete_cookie(
        settings.refresh_cookie_name,
        httponly=cookie.http_only,
        secure=cookie.secure,
        samesite=cookie.same_site,
        domain=cookie.domain,
    )
    return response


# ─── Password reset ─────────────────────────────────────


@router.post("/reset-password/request", status_code=204)
async def request_password_reset(
    body: PasswordResetRequest,
    db: AsyncSession = Depends(get_db),
    communications: CommunicationsService = Depends(get_communications),
):
    """Create a reset token and hand it to the mail collaborator."""
    token = await CredentialVerifier(db).generate_password_reset_token(body.email)
    await communications.send_password_reset(body.email, token)
    return Response(status_code=204)


@router.post("/reset-password", status_code=204)
async def reset_password(
    body: PasswordReset,
    db: AsyncSession = Depends(get_db),
):
    """Set a new password using a reset token."""
    await CredentialVerifier(db).reset_password(body.password, body.token)
    return Response(status_code=204)


# ─── Email verification ─────────────────────────────────


@router.post("/verify", status_code=204)
async def verify_email(
    body: VerifyRequest,
    db: AsyncSession = Depends(get_db),
):
    """Mark the token's user as verified. Re-using a link is harmless."""
    await CredentialVerifier(db).mark_user_as_verified(body.token)
    return Response(status_code=204)


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the current authenticated user's info."""
    user = await UserService(db).find_by_id(identity.user_id)
    if not user:
        raise ServiceError(
            name=ErrorName.USER_DOES_NOT_EXIST,
            message="The user does not exist",
            status_code=404,
            debug="The access token subject has no user row",
        )
    return user
