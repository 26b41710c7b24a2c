"""
Authentication schemas for the EquipTrack backend
"""

from pydantic import BaseModel, Field
from typing import Optional

from .enums import UserRole


class TokenPayload(BaseModel):
    """Authenticated principal as decoded from the bearer token"""
    user_id: str = Field(..., description="User identifier")
    username: str = Field(..., description="Username")
    role: UserRole = Field(UserRole.USER, description="ADMIN or USER")
    jti: Optional[str] = Field(None, description="JWT ID")
    exp: Optional[int] = Field(None, description="Expiration timestamp")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


__all__ = ["TokenPayload"]
