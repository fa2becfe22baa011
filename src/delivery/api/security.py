"""Admin session tokens.

A successful login returns a signed JWT whose ``exp`` claim is
``ADMIN_TOKEN_TTL_SECONDS`` after issue. Nothing is stored server side:
a token is valid as long as its signature checks out and it has not
expired.
"""

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

ADMIN_SUBJECT = "admin"


def create_admin_token(
    secret: str,
    ttl_seconds: int,
    algorithm: str = "HS256",
    issued_at: datetime | None = None,
) -> str:
    issued_at = issued_at or datetime.now(UTC)
    payload = {
        "sub": ADMIN_SUBJECT,
        "type": "admin_session",
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=ttl_seconds),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_admin_token(token: str, secret: str, algorithm: str = "HS256") -> dict[str, Any]:
    """Decode and validate an admin token. Raises JWTError on failure."""
    claims = jwt.decode(token, secret, algorithms=[algorithm])
    if claims.get("sub") != ADMIN_SUBJECT or claims.get("type") != "admin_session":
        raise JWTError("Not an admin session token")
    return claims
