"""Password hashing helpers for signup/login."""

from __future__ import annotations

from hashlib import sha256

import bcrypt


def _prehash(raw: str) -> bytes:
    # bcrypt only looks at the first 72 bytes; hash first so long passwords still count in full.
    return sha256(raw.encode()).hexdigest().encode()


def hash_password(raw: str) -> str:
    return bcrypt.hashpw(_prehash(raw), bcrypt.gensalt()).decode()


def verify_password(raw: str, hashed: str) -> bool:
    return bcrypt.checkpw(_prehash(raw), hashed.encode())
