"""
auth/passwords.py -- At-rest password hashing (bcrypt, direct usage).

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

The work factor defaults to 10 rounds (BCRYPT_ROUNDS). Hashing is CPU-bound: every route that
reaches these functions is a plain `def` so FastAPI runs it in the worker
threadpool instead of on the event loop.
"""

from __future__ import annotations

import logging

import bcrypt

logger = logging.getLogger("electrifind.auth")

DEFAULT_ROUNDS = 10


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext matches the bcrypt hash.

    checkpw compares in constant time. A malformed stored hash counts as a
    mismatch rather than an error, so a corrupted row cannot be used to probe
    which phones exist.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("bcrypt rejected the password comparison; treating as mismatch")
        return False


# Plaintext behind the timing-equalization hash. UserStore hashes it once at
# its own work factor; a dummy at any other cost would make unknown phones
# measurably faster to reject than known ones.
DUMMY_PASSWORD = "electrifind_timing_dummy"
