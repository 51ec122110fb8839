"""Password hashing with bcrypt.

bcrypt salts automatically; hashes start with "$2b$". Passwords are
truncated to bcrypt's 72-byte limit before hashing. The work factor
comes from TASKMANAGER_BCRYPT_ROUNDS (12 by default).
"""

import bcrypt

from taskmanager.config import settings


def hash_password(password: str) -> str:
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """True if `password` matches `password_hash`. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:72], password_hash.encode("utf-8")
        )
    except (ValueError, TypeError):
        return False
