"""
FastAPI dependencies for bearer-token authentication.

Uploading and deleting images needs a signed-in user; the cleanup sweep
needs an admin. Reading thumbnails and public files needs neither.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from typing import Optional
import os
import logging

from apps.media.auth.models import ROLES, CurrentUser, TokenPayload

logger = logging.getLogger("mediastore.auth")

JWT_ALGORITHM = "HS256"

# Missing header is not an error here; routes decide whether they need a user
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str, secret: str, audience: str = "authenticated") -> TokenPayload:
    """
    Verify signature, audience and expiry of a token.

    Raises:
        JWTError: If any check fails
    """
    payload = jwt.decode(
        token,
        secret,
        algorithms=[JWT_ALGORITHM],
        audience=audience,
        options={"verify_aud": True, "verify_exp": True},
    )
    return TokenPayload(**payload)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[CurrentUser]:
    """
    User from the Authorization header, or None when no token was sent.

    Raises:
        HTTPException: 401 for a bad, expired or subject-less token
        HTTPException: 500 when JWT_SECRET is unset
    """
    if not credentials:
        return None

    jwt_secret = os.getenv("JWT_SECRET")
    if not jwt_secret:
        logger.error("JWT_SECRET not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication not configured"
        )

    try:
        token_data = decode_token(
            credentials.credentials, jwt_secret, os.getenv("JWT_AUDIENCE", "authenticated")
        )
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        raise _unauthorized(f"Invalid authentication token: {e}")

    if not token_data.sub:
        raise _unauthorized("Invalid token: missing subject")

    return CurrentUser(
        id=token_data.sub,
        email=token_data.email,
        name=token_data.name,
        role=token_data.role if token_data.role in ROLES else "user",
    )


async def require_auth(
    current_user: Optional[CurrentUser] = Depends(get_current_user)
) -> CurrentUser:
    """401 unless a valid token was sent"""
    if not current_user:
        raise _unauthorized("Authentication required")
    return current_user


async def require_admin(
    current_user: CurrentUser = Depends(require_auth)
) -> CurrentUser:
    """403 unless the user is an admin"""
    if not current_user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
