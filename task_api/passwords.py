"""
Password hashing for user credentials (bcrypt).
"""
import bcrypt

from task_api.config import BCRYPT_ROUNDS


def _to_bytes(password: str) -> bytes:
    # Bcrypt has a 72-byte limit
    return password.encode("utf-8")[:72]


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(_to_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """True only if plain matches hashed. A missing or corrupt hash is just a mismatch."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_to_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        return False
