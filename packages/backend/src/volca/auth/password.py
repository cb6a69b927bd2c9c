"""Password hashing utilities.

Uses bcrypt for password hashing. bcrypt salts automatically, and
checkpw compares in constant time. The work factor comes from
settings.bcrypt_rounds (12 in production, lowered in tests).

The stored hash doubles as the signing secret for password-reset tokens
(see volca.services.token_service), so every new hash invalidates all
reset links issued against the previous one.
"""

import bcrypt

from volca.config import settings


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


# Checked against when the user is unknown, so a failed login costs the
# same bcrypt work whether or not the email exists.
DUMMY_HASH: str = hash_password("volca-timing-equalization")
