"""JWT helpers for identities issued by the external identity provider.

The API never sees passwords; it only verifies the signature of the bearer
token and reads the user id from ``sub``.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt

from carecircle.config import settings


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Sign an access token the way the identity provider does (dev tooling and tests)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT.

    Raises:
        jose.JWTError: If the signature is invalid or the token expired.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
