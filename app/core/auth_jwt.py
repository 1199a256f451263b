"""JWT token creation and verification utilities.

Identity is owned by the upstream auth service; the calendar only needs the
user id carried in the 'sub' claim of a token signed with the shared secret.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from loguru import logger

from app.config.settings import settings

TOKEN_ISSUER = "workout-calendar"


def create_access_token(user_id: str) -> str:
    """Create a JWT access token for a user (used by tooling and tests).

    Args:
        user_id: User ID to encode in the 'sub' claim

    Returns:
        JWT token string
    """
    user_id_str = str(user_id) if user_id is not None else ""
    if not user_id_str:
        raise ValueError("user_id cannot be None or empty")

    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id_str,
        "exp": now + timedelta(days=settings.auth_token_expire_days),
        "iat": now,
        "iss": TOKEN_ISSUER,
    }
    return jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> str:
    """Decode and verify a JWT access token.

    Returns:
        User ID from the 'sub' claim

    Raises:
        ValueError: If the token is invalid, expired or has no subject
    """
    if not settings.auth_secret_key:
        raise ValueError("Token verification is not configured")
    try:
        payload = jwt.decode(token, settings.auth_secret_key, algorithms=[settings.auth_algorithm])
    except JWTError as e:
        logger.warning(f"JWT decode failed: {e}")
        raise ValueError("Invalid or expired token") from e

    user_id = payload.get("sub")
    if not user_id:
        raise ValueError("Token missing user ID")
    return str(user_id)
