"""
Authentication module.
Provides JWT validation and user authentication.
"""
from apps.media.auth.models import CurrentUser, TokenPayload
from apps.media.auth.dependencies import (
    get_current_user,
    require_auth,
    require_admin,
)

__all__ = [
    "CurrentUser",
    "TokenPayload",
    "get_current_user",
    "require_auth",
    "require_admin",
]
