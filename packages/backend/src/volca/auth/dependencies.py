"""FastAPI auth dependencies.

These are used as Depends() in route handlers to extract and validate
the current user identity from the request. Only Bearer access tokens
are accepted here; refresh tokens are opaque and only ever reach
/auth/refresh and /auth/logout.
"""

from typing import Optional

from fastapi import Depends, Header

from volca.auth.jwt import ACCESS, TokenError, verify_token
from volca.errors import ErrorName, ServiceError


class CurrentIdentity:
    """Represents the authenticated user making the request.

    Everything downstream (the Project Access Guard, /auth/me) trusts
    this object and does not re-check the token.
    """

    def __init__(self, user_id: str):
        self.user_id = user_id

    def __repr__(self) -> str:
        return f"CurrentIdentity(user_id={self.user_id!r})"


def _unauthenticated(debug: str) -> ServiceError:
    return ServiceError(
        name=ErrorName.AUTHENTICATION_FAILED,
        message="Authentication required",
        status_code=401,
        debug=debug,
    )


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no auth header).

    A header that is present but invalid is still an error: a caller
    that sent credentials should learn they were rejected.
    """
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return _authenticate_jwt(authorization[7:])


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no auth)."""
    if not identity:
        raise _unauthenticated("No bearer token on the request")
    return identity


def _authenticate_jwt(token: str) -> CurrentIdentity:
    try:
        payload = verify_token(token)
    except TokenError as e:
        raise _unauthenticated(str(e))

    if payload.get("type") != ACCESS or not payload.get("sub"):
        raise _unauthenticated("Token is not an access token")
    return CurrentIdentity(user_id=payload["sub"])
