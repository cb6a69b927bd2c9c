"""JWT token creation and verification primitives.

Three operations, shared by every signed token kind:
- create_token: sign a payload with an expiry
- decode_token: read claims WITHOUT checking the signature
- verify_token: check signature + expiry and return the claims

All of them accept an optional secret. Access and email-verification
tokens use the process-wide settings.jwt_secret; password-reset tokens
are signed with the subject's password hash, which is why the reset
flow has to decode (unverified) first to learn whose hash to use.

Refresh tokens are not JWTs at all — generate_opaque_token() returns
random bytes with no decodable claims.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from volca.config import settings

# Claim "type" values — one per token kind.
ACCESS = "access"
PASSWORD_RESET = "password_reset"
EMAIL_VERIFICATION = "email_verification"


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_token(
    payload: dict,
    expires_in: int,
    secret: Optional[str] = None,
) -> str:
    """Sign payload with an expiry of expires_in seconds."""
    now = datetime.now(timezone.utc)
    claims = {
        **payload,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(
        claims, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> dict:
    """Decode a JWT without verifying signature or expiry.

    Only used to find out who a token claims to be about before the
    right secret can be looked up. Never trust the result on its own.
    """
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Malformed token: {e}")


def verify_token(token: str, secret: Optional[str] = None) -> dict:
    """Verify and decode a JWT.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        return jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")


def generate_opaque_token() -> str:
    """Random, unguessable token value (512 bits, URL-safe)."""
    return secrets.token_urlsafe(64)
