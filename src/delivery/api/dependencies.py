"""Request dependencies: the service container and the admin session check."""

import secrets

from fastapi import Depends, Header, HTTPException, Request
from jose import JWTError

from delivery.api.security import create_admin_token, decode_admin_token
from delivery.services.container import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def open_admin_session(services: Services, password: str) -> str:
    """Issue a session token for the shared admin password."""
    expected = services.settings.ADMIN_PASSWORD
    if not expected or not secrets.compare_digest(password.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid admin password")

    return create_admin_token(
        services.admin_token_secret,
        services.settings.ADMIN_TOKEN_TTL_SECONDS,
        algorithm=services.settings.ADMIN_TOKEN_ALGORITHM,
    )


def require_admin(
    x_admin_token: str = Header(default=""),
    services: Services = Depends(get_services),
) -> str:
    if not x_admin_token:
        raise HTTPException(status_code=401, detail="Admin session missing or expired")
    try:
        decode_admin_token(
            x_admin_token,
            services.admin_token_secret,
            algorithm=services.settings.ADMIN_TOKEN_ALGORITHM,
        )
    except JWTError as exc:
        raise HTTPException(status_code=401, detail="Admin session missing or expired") from exc
    return x_admin_token
