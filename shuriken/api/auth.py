"""Admin token guard for the administrative API."""

import hmac

from fastapi import Depends, HTTPException, Request, status

from shuriken.api.deps import Settings, get_settings


def get_bearer_token(request: Request) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_admin(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Validate the admin token for protected endpoints.

    Raises:
        HTTPException: 503 if no admin token is configured, 401 if the
            request's token is missing or wrong.
    """
    expected = settings.admin_token
    if expected is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API disabled: SHURIKEN_ADMIN_TOKEN is not set",
        )

    token = get_bearer_token(request) or ""
    if not hmac.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return "admin"
