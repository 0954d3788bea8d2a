"""
Password hashing with bcrypt.

bcrypt only looks at the first 72 bytes of a secret (newer releases refuse
longer input), so passwords are encoded and cut to that length before both
hashing and checking.
"""

import bcrypt

from shortlink_app.config import settings

BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = None) -> str:
    """Return a salted bcrypt hash as text."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False
