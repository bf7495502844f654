"""DeletionApproval data model for recruitguard."""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field

from recruitguard.models.resource import ResourceType, RiskLevel


class ApprovalStatus(str, Enum):
    """Approval status enumeration. `approved` and `rejected` are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDecision(str, Enum):
    """Decision a deciding actor can take on a pending approval."""
    APPROVED = "approved"
    REJECTED = "rejected"


class DeletionApproval(BaseModel):
    """Request for permission to HARD delete a high-risk resource."""

    id: str = Field(..., description="Unique approval identifier")
    resource_type: ResourceType = Field(..., description="Type of the resource to delete")
    resource_id: str = Field(..., description="ID of the resource to delete")
    requested_by: str = Field(..., description="Actor ID that requested the deletion")
    deletion_reason: str = Field(..., description="Why the deletion was requested")
    risk_level: RiskLevel = Field(..., description="Assessed risk level at request time")
    requires_mfa: bool = Field(False, description="True iff risk_level is critical")
    status: ApprovalStatus = Field(ApprovalStatus.PENDING, description="Approval status")
    correlation_id: str = Field(..., description="Links request, decision and execution events")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Caller-supplied metadata")
    requested_at: datetime = Field(..., description="Request timestamp")
    decided_by: Optional[str] = Field(None, description="Actor ID that approved or rejected")
    decided_at: Optional[datetime] = Field(None, description="Decision timestamp")
    rejection_reason: Optional[str] = Field(None, description="Reason given for a rejection")
    mfa_verified: bool = Field(False, description="Whether the deciding actor verified MFA")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING.value
