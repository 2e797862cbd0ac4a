"""
Password hashing adapter - bcrypt helpers.

Pending payloads carry bcrypt hashes rather than plaintext passwords,
so nothing sensitive sits in the verification store in the clear.
"""

import bcrypt

# Pre-computed bcrypt hash for timing oracle prevention.
# Compared against when an account doesn't exist so bcrypt always runs.
DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash password using bcrypt with the given cost factor."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def check_password(password: str, password_hash: str | None) -> bool:
    """
    Constant-time password check.

    A missing hash is checked against DUMMY_BCRYPT_HASH and always fails.
    """
    stored_hash = password_hash if password_hash is not None else DUMMY_BCRYPT_HASH
    valid = bcrypt.checkpw(password.encode(), stored_hash.encode())
    return valid and password_hash is not None
