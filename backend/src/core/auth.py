"""
Authentication: bearer JWT verification.

Tokens are issued by the account service; this API only verifies them. The
``sub`` claim carries the user id.
"""
import logging
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import Settings, get_settings
from db.session import get_graph_store
from models.user import User
from services.graph_store import GraphStore

logger = logging.getLogger(__name__)


# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Decode and validate a JWT.

    Raises:
        HTTPException: If token is invalid, expired, or signed with the wrong key.
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.PyJWTError as e:
        # Log full details for debugging (server-side only)
        logger.warning("JWT validation failed: %s", e)
        raise _unauthorized("Invalid token")


async def _authenticate_user(
    credentials: HTTPAuthorizationCredentials,
    store: GraphStore,
    settings: Settings,
) -> User:
    payload = decode_jwt(credentials.credentials, settings)
    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError:
        raise _unauthorized("Invalid token: malformed sub claim")

    user = await store.get_user(user_id)
    if user is None:
        raise _unauthorized("User not found")
    # Deactivated accounts keep their record but lose API access
    if not user.is_active:
        raise _unauthorized("User account is not active")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    store: GraphStore = Depends(get_graph_store),
    settings: Settings = Depends(get_settings),
) -> User:
    """Dependency that validates the bearer token and returns the current user."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    return await _authenticate_user(credentials, store, settings)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    store: GraphStore = Depends(get_graph_store),
    settings: Settings = Depends(get_settings),
) -> User | None:
    """
    Like get_current_user, but anonymous requests yield None.

    A token that is present but invalid is still rejected: silently treating
    it as a guest would hide client bugs.
    """
    if credentials is None:
        return None
    return await _authenticate_user(credentials, store, settings)
