import logging
from typing import Annotated
from uuid import UUID

from fastapi import Cookie, Depends, HTTPException, status

from app.auth.schemas import AuthenticatedUser
from app.core import security

logger = logging.getLogger(__name__)


async def get_access_token_from_cookie(
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """Extract and validate access token from cookie"""
    if not access_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authenticated",
        )
    return access_token


async def get_validated_token_payload(
    token: str,
    expected_type: str = "access",
) -> dict:
    """Decode and validate JWT token"""
    payload = security.decode_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != expected_type:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token type, expected {expected_type}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


async def get_current_user(
    access_token: str = Depends(get_access_token_from_cookie),
) -> AuthenticatedUser:
    """Identify the caller from the access token. No user table is consulted."""
    payload = await get_validated_token_payload(access_token, expected_type="access")

    subject = payload.get("sub")
    try:
        user_id = UUID(str(subject))
    except ValueError:
        logger.warning("Access token with malformed subject: %r", subject)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return AuthenticatedUser(id=user_id, role=str(payload.get("role") or "learner"))


async def require_admin(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator privileges required",
        )
    return current_user
