"""
Password hashing helpers shared by the organizer directories.

Security Design - Timing Oracle Prevention:
bcrypt.checkpw always runs. When no hash is stored for the email, the
password is compared against a pre-computed dummy hash so response
time does not reveal whether an organizer account exists.
"""

import bcrypt

# Hash of "dummy_password_for_timing_safety" with cost factor 10.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


def hash_password(password: str, cost: int = 10) -> str:
    """Hash password using bcrypt with the given cost factor."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=cost)).decode()


def check_password(password: str, stored_hash: str | None) -> bool:
    """
    Constant-time password check.

    Returns False when stored_hash is None, after still running bcrypt.
    """
    candidate = stored_hash if stored_hash is not None else _DUMMY_BCRYPT_HASH
    valid = bcrypt.checkpw(password.encode(), candidate.encode())
    return valid and stored_hash is not None
