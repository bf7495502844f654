"""Actor model: who performed an audited action."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

ANONYMOUS_ACTOR_ID = "anonymous"
SYSTEM_ACTOR_ID = "system"


class ActorKind(str, Enum):
    """Actor kind enumeration."""
    USER = "user"
    SYSTEM = "system"
    ANONYMOUS = "anonymous"


class Actor(BaseModel):
    """The entity performing an action.

    Passed explicitly into every orchestrator call; there is no ambient "current actor".
    """

    id: str = Field(..., description="Actor identifier (user id, 'system' or 'anonymous')")
    kind: ActorKind = Field(ActorKind.USER, description="Actor kind")
    display_name: str = Field(..., description="Human-readable actor name")
    auth_method: Optional[str] = Field(None, description="How the actor authenticated (e.g. 'jwt')")
    is_admin: bool = Field(False, description="Whether the actor holds the admin capability")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @classmethod
    def anonymous(cls) -> "Actor":
        """Synthesized actor for requests without an authenticated session."""
        return cls(
            id=ANONYMOUS_ACTOR_ID,
            kind=ActorKind.ANONYMOUS,
            display_name="Anonymous User",
        )

    @classmethod
    def system(cls, display_name: str = "System") -> "Actor":
        return cls(
            id=SYSTEM_ACTOR_ID,
            kind=ActorKind.SYSTEM,
            display_name=display_name,
            auth_method="internal",
        )

    @property
    def is_anonymous(self) -> bool:
        return self.kind == ActorKind.ANONYMOUS.value

    def audit_dict(self) -> dict:
        """Actor as stored on an audit event (capability facts are not persisted)."""
        return {
            "id": self.id,
            "type": getattr(self.kind, "value", self.kind),
            "display_name": self.display_name,
            "auth_method": self.auth_method,
        }
