"""Password hashing helpers."""

import bcrypt

MIN_PASSWORD_LENGTH = 6
# bcrypt only reads the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72
BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    """Hash password with bcrypt"""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against hash. Malformed hashes never verify."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False
