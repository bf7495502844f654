"""Resource handles and deletion classifications for recruitguard."""

from enum import Enum
from typing import Union
from pydantic import BaseModel, Field


class ResourceType(str, Enum):
    """Deletable resource types."""
    CANDIDATE = "candidate"
    JOB = "job"
    FEEDBACK = "feedback"


class DeletionType(str, Enum):
    """Deletion type enumeration."""
    SOFT = "SOFT"
    HARD = "HARD"
    ERASURE = "ERASURE"


class RiskLevel(str, Enum):
    """Blast-radius classification of a pending deletion.

    There is no "none" level: every deletion is consequential.
    """
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_RISK_RANK = {
    RiskLevel.MEDIUM.value: 1,
    RiskLevel.HIGH.value: 2,
    RiskLevel.CRITICAL.value: 3,
}


def risk_rank(level: Union[str, RiskLevel]) -> int:
    """Return the ordinal rank of a risk level (medium < high < critical)."""
    value = level.value if hasattr(level, "value") else str(level)
    return _RISK_RANK[value]


def risk_at_least(level: Union[str, RiskLevel], threshold: Union[str, RiskLevel]) -> bool:
    return risk_rank(level) >= risk_rank(threshold)


class Resource(BaseModel):
    """Abstract handle to a deletable entity.

    `display_name` is for audit readability only and never used for identity.
    """

    resource_type: ResourceType = Field(..., description="Resource type")
    resource_id: str = Field(..., description="Opaque resource identifier")
    display_name: str = Field("Unknown", description="Human label used in audit payloads")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
