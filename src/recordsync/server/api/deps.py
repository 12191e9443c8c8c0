"""FastAPI dependencies for API routes."""

from __future__ import annotations

import secrets

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from recordsync.server.config import ServerSettings
from recordsync.server.database import Database

# Security scheme
security = HTTPBearer(auto_error=False)


def get_db(request: Request) -> Database:
    """Get database from app state."""
    db: Database = request.app.state.db
    return db


def get_settings(request: Request) -> ServerSettings:
    """Get server settings from app state."""
    settings: ServerSettings = request.app.state.settings
    return settings


def require_auth(
    request: Request,
    x_api_key: str | None = Header(default=None),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """Accept the configured API key or a valid bearer token.

    Returns:
        Name of the authenticated principal.
    """
    settings = get_settings(request)
    if x_api_key is not None:
        if settings.api_key and secrets.compare_digest(x_api_key, settings.api_key):
            return "api-key"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = get_db(request).validate_token(credentials.credentials)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or revoked token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token.name
