"""
Security helpers for Mente Merecedora.

Password hashing (bcrypt via passlib), JWT access tokens, signed media
tokens and password-reset tokens.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

DEFAULT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 30
MEDIA_TOKEN_EXPIRE_SECONDS = 2 * 60 * 60
RESET_TOKEN_EXPIRE_MINUTES = 10


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    data: dict,
    secret_key: str,
    algorithm: str = DEFAULT_ALGORITHM,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT.

    Args:
        data: Claims to encode (``sub`` holds the user id)
        secret_key: Signing secret
        algorithm: JWT algorithm
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded token
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_access_token(
    token: str,
    secret_key: str,
    algorithm: str = DEFAULT_ALGORITHM,
) -> Optional[dict]:
    """Decode a JWT, returning None when it is invalid or expired."""
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        return None


def create_media_token(
    object_name: str,
    secret_key: str,
    algorithm: str = DEFAULT_ALGORITHM,
    expires_seconds: int = MEDIA_TOKEN_EXPIRE_SECONDS,
) -> str:
    """Sign access to a single stored object for a limited time."""
    return create_access_token(
        {"obj": object_name, "scope": "media"},
        secret_key,
        algorithm=algorithm,
        expires_delta=timedelta(seconds=expires_seconds),
    )


def verify_media_token(
    token: str,
    object_name: str,
    secret_key: str,
    algorithm: str = DEFAULT_ALGORITHM,
) -> bool:
    payload = decode_access_token(token, secret_key, algorithm)
    if not payload or payload.get("scope") != "media":
        return False
    return payload.get("obj") == object_name


def generate_reset_token() -> tuple[str, str]:
    """
    Generate a password-reset token.

    Returns:
        (raw token sent to the user, sha256 hash stored in the database)
    """
    raw = secrets.token_hex(20)
    return raw, hash_reset_token(raw)


def hash_reset_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()
