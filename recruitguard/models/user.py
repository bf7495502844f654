"""User data model for recruitguard."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from recruitguard.models.actor import Actor, ActorKind


class UserRole(str, Enum):
    """User role enumeration."""
    ADMIN = "admin"
    RECRUITER = "recruiter"


class User(BaseModel):
    """User model for recruitguard."""
    
    id: str = Field(..., description="Unique user identifier")
    email: str = Field(..., description="User email address")
    name: Optional[str] = Field(None, description="User display name")
    role: UserRole = Field(UserRole.RECRUITER, description="User role")
    created_at: datetime = Field(..., description="User creation timestamp")
    updated_at: datetime = Field(..., description="User last update timestamp")
    
    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def to_actor(self, auth_method: str = "jwt") -> Actor:
        """Build the actor context used by the deletion core."""
        return Actor(
            id=self.id,
            kind=ActorKind.USER,
            display_name=self.name or self.email or "Unknown User",
            auth_method=auth_method,
            is_admin=self.is_admin,
        )
