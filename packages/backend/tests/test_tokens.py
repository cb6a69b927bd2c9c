"""Token primitives and the token issuer.

Tests cover:
1. Signing / decoding / verifying JWTs with default and custom secrets
2. Opaque refresh tokens (no claims, persisted with a 1-year expiry)
3. Access, password-reset and verification token shapes
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from volca.auth import jwt as tokens
from volca.config import settings
from volca.db.models import RefreshToken
from volca.errors import ErrorName, ServiceError
from volca.services.token_service import TokenIssuer


# ═══════════════════════════════════════════════════════════
# Primitives
# ═══════════════════════════════════════════════════════════


def test_verify_round_trips_claims():
    token = tokens.create_token({"sub": "abc"}, expires_in=60)
    payload = tokens.verify_token(token)
    assert payload["sub"] == "abc"
    assert payload["exp"] - payload["iat"] == 60


def test_verify_rejects_wrong_secret():
    token = tokens.create_token({"sub": "abc"}, expires_in=60, secret="secret-one-" + "a" * 32)
    with pytest.raises(tokens.TokenError):
        tokens.verify_token(token, secret="secret-two-" + "b" * 32)


def test_verify_rejects_expired_token():
    token = tokens.create_token({"sub": "abc"}, expires_in=-10)
    with pytest.raises(tokens.TokenError, match="expired"):
        tokens.verify_token(token)


def test_decode_ignores_signature_and_expiry():
    token = tokens.create_token({"sub": "abc"}, expires_in=-10, secret="other-" + "c" * 32)
    assert tokens.decode_token(token)["sub"] == "abc"


def test_decode_rejects_garbage():
    with pytest.raises(tokens.TokenError):
        tokens.decode_token("not-a-jwt")


def test_opaque_tokens_are_unique_and_not_jwts():
    a, b = tokens.generate_opaque_token(), tokens.generate_opaque_token()
    assert a != b
    assert len(a) >= 64
    with pytest.raises(tokens.TokenError):
        tokens.decode_token(a)


# ═══════════════════════════════════════════════════════════
# Issuer
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_access_token_carries_only_subject(db_session, make_user):
    user = await make_user()
    access = TokenIssuer(db_session).issue_access_token(user)

    assert access.expires_in == 900
    payload = tokens.verify_token(access.access_token)
    assert payload["sub"] == str(user.id)
    assert payload["type"] == tokens.ACCESS
    assert set(payload) == {"sub", "type", "iat", "exp"}


@pytest.mark.asyncio
async def test_refresh_token_is_persisted_for_a_year(db_session, make_user):
    user = await make_user()
    session_id = uuid.uuid4()
    token = await TokenIssuer(db_session).issue_refresh_token(user, session_id)

    row = (
        await db_session.execute(select(RefreshToken).where(RefreshToken.token == token))
    ).scalars().one()
    assert row.subject == user.id
    assert row.session_id == session_id
    expected = datetime.now(timezone.utc) + timedelta(seconds=31_536_000)
    assert abs((row.expires_at - expected).total_seconds()) < 60


@pytest.mark.asyncio
async def test_password_reset_token_is_signed_with_password_hash(db_session, make_user):
    user = await make_user()
    token = TokenIssuer(db_session).issue_password_reset_token(user)

    payload = tokens.verify_token(token, secret=user.password)
    assert payload["sub"] == user.email
    assert payload["exp"] - payload["iat"] == 600
    with pytest.raises(tokens.TokenError):
        tokens.verify_token(token)  # process-wide secret does not verify it


@pytest.mark.asyncio
async def test_password_reset_token_requires_password(db_session, make_user):
    user = await make_user(password=None)
    with pytest.raises(ServiceError) as exc:
        TokenIssuer(db_session).issue_password_reset_token(user)
    assert exc.value.name == ErrorName.MISSING_PROPERTY_ERROR
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_email_verification_token_uses_process_secret(db_session, make_user):
    user = await make_user()
    token = TokenIssuer(db_session).issue_email_verification_token(user)

    payload = tokens.verify_token(token)
    assert payload["sub"] == user.email
    assert payload["type"] == tokens.EMAIL_VERIFICATION
    assert payload["exp"] - payload["iat"] == settings.email_verification_expire_seconds
