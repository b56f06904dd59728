"""
Signed-in user and the token claims it is built from.
"""
from pydantic import BaseModel, EmailStr
from typing import Optional

ROLES = ("user", "admin")


class CurrentUser(BaseModel):
    """User making the request, as asserted by a verified bearer token"""
    id: str  # stored as created_by/updated_by on images
    email: Optional[EmailStr] = None  # only needed for avatar lookups
    name: Optional[str] = None
    role: str = "user"

    model_config = {"frozen": True}

    def is_admin(self) -> bool:
        return self.role == "admin"

    def can_modify_image(self, created_by: Optional[str]) -> bool:
        """
        Uploaders may delete their own images; admins may delete any,
        including system uploads that have no creator.
        """
        return self.is_admin() or (created_by is not None and self.id == created_by)


class TokenPayload(BaseModel):
    """Claims read from an HS256 bearer token"""
    sub: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = "user"
    aud: str = "authenticated"
    exp: Optional[int] = None
    iat: Optional[int] = None
