"""AuditEvent data model for recruitguard.

Every audit action is a member of a closed enumeration and has exactly one payload
contract in `AUDIT_PAYLOAD_CONTRACTS`. Payloads are validated against their contract
when an event is built, so a new action cannot be recorded without one.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Type
from pydantic import BaseModel, Field, field_validator

from recruitguard.models.resource import ResourceType


class AuditAction(str, Enum):
    """Audit action enumeration."""
    CANDIDATE_SOFT_DELETE = "CANDIDATE_SOFT_DELETE"
    CANDIDATE_HARD_DELETE = "CANDIDATE_HARD_DELETE"
    CANDIDATE_RESTORE = "CANDIDATE_RESTORE"
    JOB_SOFT_DELETE = "JOB_SOFT_DELETE"
    JOB_HARD_DELETE = "JOB_HARD_DELETE"
    JOB_RESTORE = "JOB_RESTORE"
    FEEDBACK_SOFT_DELETE = "FEEDBACK_SOFT_DELETE"
    FEEDBACK_HARD_DELETE = "FEEDBACK_HARD_DELETE"
    FEEDBACK_RESTORE = "FEEDBACK_RESTORE"
    DELETE_ATTEMPT_DENIED = "DELETE_ATTEMPT_DENIED"
    DELETE_APPROVAL_REQUEST = "DELETE_APPROVAL_REQUEST"
    DELETE_APPROVAL_GRANTED = "DELETE_APPROVAL_GRANTED"
    DELETE_APPROVAL_REJECTED = "DELETE_APPROVAL_REJECTED"
    GDPR_ERASURE_REQUEST = "GDPR_ERASURE_REQUEST"
    GDPR_ERASURE_COMPLETE = "GDPR_ERASURE_COMPLETE"
    RECORD_REDACTED = "RECORD_REDACTED"


SOFT_DELETE_ACTIONS = {
    ResourceType.CANDIDATE.value: AuditAction.CANDIDATE_SOFT_DELETE,
    ResourceType.JOB.value: AuditAction.JOB_SOFT_DELETE,
    ResourceType.FEEDBACK.value: AuditAction.FEEDBACK_SOFT_DELETE,
}

HARD_DELETE_ACTIONS = {
    ResourceType.CANDIDATE.value: AuditAction.CANDIDATE_HARD_DELETE,
    ResourceType.JOB.value: AuditAction.JOB_HARD_DELETE,
    ResourceType.FEEDBACK.value: AuditAction.FEEDBACK_HARD_DELETE,
}

RESTORE_ACTIONS = {
    ResourceType.CANDIDATE.value: AuditAction.CANDIDATE_RESTORE,
    ResourceType.JOB.value: AuditAction.JOB_RESTORE,
    ResourceType.FEEDBACK.value: AuditAction.FEEDBACK_RESTORE,
}


class AuditPayload(BaseModel):
    """Base class for payload contracts. Extra keys are kept verbatim."""

    class Config:
        """Pydantic configuration."""
        extra = "allow"


class SoftDeletePayload(AuditPayload):
    resource_name: str
    deletion_type: str = "SOFT"
    deletion_reason: str
    risk_level: str
    snapshot_id: str
    pre_snapshot: Dict[str, Any]
    recoverable: bool = True
    deactivated_share_links: int = 0


class HardDeletePayload(AuditPayload):
    resource_name: str
    deletion_type: str = "HARD"
    deletion_reason: str
    approval_id: str
    snapshot_id: str
    pre_snapshot: Dict[str, Any]
    recoverable: bool = False
    irreversible: bool = True


class RestorePayload(AuditPayload):
    resource_name: str
    snapshot_id: Optional[str] = None
    reactivated_share_links: int = 0


class DeleteAttemptDeniedPayload(AuditPayload):
    resource_name: str
    attempted_by: str
    attempted_operation: str
    denial_reason: str
    security_violation: bool = True


class ApprovalRequestPayload(AuditPayload):
    approval_id: str
    resource_name: str
    requested_by: str
    deletion_reason: str
    risk_level: str
    requires_mfa: bool
    requires_approval: bool = True


class ApprovalGrantedPayload(AuditPayload):
    approval_id: str
    resource_type: str
    resource_id: str
    approved_by: str
    mfa_verified: bool = False


class ApprovalRejectedPayload(AuditPayload):
    approval_id: str
    resource_type: str
    resource_id: str
    rejected_by: str
    rejection_reason: str


class ErasureRequestPayload(AuditPayload):
    requested_by: str
    erasure_reason: str
    legal_basis: str


class ErasureCompletePayload(AuditPayload):
    erasure_reason: str
    legal_basis: str
    snapshot_id: str
    erased_fields: List[str]
    redacted_records: int = 0
    recoverable: bool = False


class RecordRedactedPayload(AuditPayload):
    """A dependent record whose content was redacted by an erasure."""
    candidate_id: str
    redacted_fields: List[str]
    erasure_reason: str


AUDIT_PAYLOAD_CONTRACTS: Dict[AuditAction, Type[AuditPayload]] = {
    AuditAction.CANDIDATE_SOFT_DELETE: SoftDeletePayload,
    AuditAction.JOB_SOFT_DELETE: SoftDeletePayload,
    AuditAction.FEEDBACK_SOFT_DELETE: SoftDeletePayload,
    AuditAction.CANDIDATE_HARD_DELETE: HardDeletePayload,
    AuditAction.JOB_HARD_DELETE: HardDeletePayload,
    AuditAction.FEEDBACK_HARD_DELETE: HardDeletePayload,
    AuditAction.CANDIDATE_RESTORE: RestorePayload,
    AuditAction.JOB_RESTORE: RestorePayload,
    AuditAction.FEEDBACK_RESTORE: RestorePayload,
    AuditAction.DELETE_ATTEMPT_DENIED: DeleteAttemptDeniedPayload,
    AuditAction.DELETE_APPROVAL_REQUEST: ApprovalRequestPayload,
    AuditAction.DELETE_APPROVAL_GRANTED: ApprovalGrantedPayload,
    AuditAction.DELETE_APPROVAL_REJECTED: ApprovalRejectedPayload,
    AuditAction.GDPR_ERASURE_REQUEST: ErasureRequestPayload,
    AuditAction.GDPR_ERASURE_COMPLETE: ErasureCompletePayload,
    AuditAction.RECORD_REDACTED: RecordRedactedPayload,
}


class AuditResource(BaseModel):
    """What an audit event refers to."""

    type: str = Field(..., description="Resource type (e.g. 'candidate', 'deletion_approval')")
    id: Optional[str] = Field(None, description="Resource identifier")
    path: Optional[str] = Field(None, description="Request path or logical location")


class AuditClient(BaseModel):
    """Caller metadata. `ip` is attributed server-side from the connection."""

    user_agent: str = Field("unknown", description="Caller user agent")
    ip: Optional[str] = Field(None, description="Network origin as seen by the server")


class AuditEvent(BaseModel):
    """Audit event captures security/business-relevant behavior.

    `id`, `sequence`, `timestamp`, `prev_hash` and `event_hash` are assigned by the
    audit log when the event is recorded.
    """

    action: AuditAction = Field(..., description="Audit action")
    actor: Dict[str, Any] = Field(..., description="Actor that performed the action")
    resource: AuditResource = Field(..., description="Resource the event refers to")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Action-specific payload")
    client: Optional[AuditClient] = Field(None, description="Caller metadata")
    correlation_id: str = Field(..., description="Groups the events of one logical operation")
    id: Optional[str] = Field(None, description="Unique audit event identifier")
    sequence: Optional[int] = Field(None, description="Position in the audit chain")
    timestamp: Optional[datetime] = Field(None, description="Server-assigned event timestamp")
    prev_hash: Optional[str] = Field(None, description="Hash of the previous event in the chain")
    event_hash: Optional[str] = Field(None, description="Hash of this event")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @field_validator("payload")
    @classmethod
    def _payload_matches_contract(cls, value: Dict[str, Any], info) -> Dict[str, Any]:
        action = info.data.get("action")
        if action is None:
            return value
        contract = AUDIT_PAYLOAD_CONTRACTS[AuditAction(action)]
        return contract.model_validate(value).model_dump(mode="json")
