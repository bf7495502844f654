"""Deletion policy configuration.

Whether a computed risk level forces the approval path is an explicit, configurable
decision. By default admins soft-delete directly at any risk level; set
`DELETION_APPROVAL_THRESHOLD` to route deletions at or above a level into approval.
"""

import os
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from recruitguard.models.resource import RiskLevel, risk_at_least

load_dotenv()

_DISABLED_VALUES = {"", "none", "off", "disabled"}


def _parse_threshold(raw: Optional[str]) -> Optional[RiskLevel]:
    value = (raw or "").strip().lower()
    if value in _DISABLED_VALUES:
        return None
    return RiskLevel(value)


class DeletionPolicy(BaseModel):
    """Policy knobs consulted by the deletion orchestrator."""

    approval_threshold: Optional[RiskLevel] = Field(
        None, description="Risk level at or above which handle_delete files an approval instead of deleting"
    )
    allow_self_approval: bool = Field(
        False, description="Whether the requester may decide their own approval"
    )

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @classmethod
    def from_env(cls) -> "DeletionPolicy":
        return cls(
            approval_threshold=_parse_threshold(os.getenv("DELETION_APPROVAL_THRESHOLD")),
            allow_self_approval=os.getenv("DELETION_ALLOW_SELF_APPROVAL", "False").lower() == "true",
        )

    def requires_approval(self, risk_level: RiskLevel) -> bool:
        if self.approval_threshold is None:
            return False
        return risk_at_least(risk_level, self.approval_threshold)
