"""Deletion orchestrator: the façade over authorization, risk, snapshots, approvals and audit.

A deletion operation moves through

    Requested -> Authorizing -> RiskAssessed -> (Direct | PendingApproval)
              -> Snapshotted -> Mutated -> Logged -> Done

with `AuthorizationDenied` off Authorizing and `BlockedDuplicatePending` off
PendingApproval. The snapshot is committed before the mutation is attempted; the
audit event is written after it and never blocks the caller-visible result.

The orchestrator holds no state between calls. The acting `Actor` is passed into
every operation.
"""

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from recruitguard.database.approval_repository import ApprovalRepository
from recruitguard.database.audit_repository import AuditRepository, ChainVerification
from recruitguard.database.resource_repository import ResourceRepository
from recruitguard.database.snapshot_repository import SnapshotRepository
from recruitguard.governance.errors import (
    AlreadyDecided,
    AlreadyErased,
    ApprovalRequired,
    DuplicatePendingRequest,
    ErasureNotConfirmed,
    Forbidden,
    InvalidDecision,
    MfaRequired,
    MutationFailed,
    NotFound,
    PersistenceError,
    SelfApprovalForbidden,
    SnapshotFailed,
)
from recruitguard.governance.policy import DeletionPolicy
from recruitguard.governance.risk import RiskAssessment, RiskAssessor
from recruitguard.models.actor import Actor
from recruitguard.models.approval import ApprovalDecision, ApprovalStatus, DeletionApproval
from recruitguard.models.audit_event import (
    AuditAction,
    AuditClient,
    AuditEvent,
    AuditResource,
    HARD_DELETE_ACTIONS,
    RESTORE_ACTIONS,
    SOFT_DELETE_ACTIONS,
)
from recruitguard.models.constants import (
    ERASURE_CONFIRMATION_PHRASE,
    ERASURE_LEGAL_BASIS,
    MSG_ADMIN_ONLY,
    MSG_ALREADY_PENDING,
    MSG_APPROVAL_REQUIRED,
    MSG_ERASURE_NOT_CONFIRMED,
    MSG_NOT_AUTHENTICATED,
)
from recruitguard.models.resource import DeletionType, Resource, ResourceType, RiskLevel

logger = logging.getLogger(__name__)

APPROVAL_RESOURCE_TYPE = "deletion_approval"


class DeletionStage(str, Enum):
    """Stages of a deletion operation (not of the resource)."""
    REQUESTED = "requested"
    AUTHORIZING = "authorizing"
    AUTHORIZATION_DENIED = "authorization_denied"
    RISK_ASSESSED = "risk_assessed"
    PENDING_APPROVAL = "pending_approval"
    BLOCKED_DUPLICATE_PENDING = "blocked_duplicate_pending"
    SNAPSHOTTED = "snapshotted"
    MUTATED = "mutated"
    LOGGED = "logged"
    DONE = "done"


class DeletionResult(BaseModel):
    """Structured result of a deletion-core operation, for callers to render."""

    success: bool = Field(..., description="Whether the operation was accepted")
    requires_approval: bool = Field(False, description="True when the deletion is waiting on an approval")
    approval_id: Optional[str] = Field(None, description="Approval filed or referenced by the operation")
    error: Optional[str] = Field(None, description="Specific, user-facing failure message")
    error_code: Optional[str] = Field(None, description="Stable machine-readable error code")
    correlation_id: Optional[str] = Field(None, description="Correlation ID of the operation")
    snapshot_id: Optional[str] = Field(None, description="Snapshot captured before the mutation")
    risk_level: Optional[RiskLevel] = Field(None, description="Assessed risk level")
    stage: DeletionStage = Field(..., description="Final stage reached by the operation")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


def _failure(stage: DeletionStage, error: str, error_code: str, **kwargs) -> DeletionResult:
    return DeletionResult(success=False, error=error, error_code=error_code, stage=stage, **kwargs)


class DeletionOrchestrator:
    """Governs destructive operations on candidates, jobs and feedback."""

    def __init__(
        self,
        db: Session,
        policy: Optional[DeletionPolicy] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.clock = clock
        self.policy = policy or DeletionPolicy.from_env()
        self.resources = ResourceRepository(db)
        self.snapshots = SnapshotRepository(db, clock)
        self.approvals = ApprovalRepository(db, clock)
        self.audit = AuditRepository(db, clock)
        self.risk = RiskAssessor(self.resources)

    # Read-only operations

    def assess_deletion_risk(self, resource_type: Union[str, ResourceType], resource_id: str) -> RiskAssessment:
        return self.risk.assess(ResourceType(resource_type), resource_id)

    def query_audit_history(
        self,
        resource_type: Union[str, ResourceType],
        resource_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[AuditEvent]:
        return self.audit.query(ResourceType(resource_type), resource_id, limit=limit, offset=offset)

    def verify_audit_chain(self) -> ChainVerification:
        return self.audit.verify_chain()

    def list_approvals(self, status: Optional[ApprovalStatus] = None) -> List[DeletionApproval]:
        return self.approvals.list(status)

    def list_soft_deleted(self, resource_type: Optional[ResourceType] = None) -> List[Dict]:
        return self.resources.list_soft_deleted(resource_type)

    # Soft delete

    def handle_delete(
        self,
        actor: Actor,
        resource_type: Union[str, ResourceType],
        resource_id: str,
        display_name: str,
        reason: str,
        pre_snapshot_state: Optional[Dict] = None,
        client: Optional[AuditClient] = None,
    ) -> DeletionResult:
        """Soft-delete a resource after authorization, risk assessment and snapshot.

        Authorization and duplicate-pending failures come back as structured results.

        Raises:
            SnapshotFailed: if the pre-delete snapshot could not be persisted (nothing was mutated)
            MutationFailed: if the soft delete itself failed (the snapshot stays orphaned)
        """
        resource_type = ResourceType(resource_type)
        self._trace(DeletionStage.AUTHORIZING, resource_type, resource_id)
        if not actor.is_admin:
            self._deny(actor, resource_type, resource_id, display_name, "soft_delete",
                       "Non-admin user attempted deletion", client)
            return _failure(DeletionStage.AUTHORIZATION_DENIED, MSG_ADMIN_ONLY, Forbidden.code)

        pending = self.approvals.pending_for(resource_type, resource_id)
        if pending:
            return _failure(DeletionStage.BLOCKED_DUPLICATE_PENDING, MSG_ALREADY_PENDING, DuplicatePendingRequest.code,
                            approval_id=pending.id)

        missing = self._check_active(resource_type, resource_id)
        if missing:
            return missing

        assessment = self.risk.assess(resource_type, resource_id)
        risk_value = assessment.risk_level.value
        self._trace(DeletionStage.RISK_ASSESSED, resource_type, resource_id)
        logger.info(f"Deletion risk for {resource_type.value} {resource_id}: {risk_value} ({assessment.reason})")

        if self.policy.requires_approval(assessment.risk_level):
            return self._file_approval(actor, resource_type, resource_id, display_name, reason,
                                       assessment.risk_level, {"requested_via": "handle_delete"}, client)
        if assessment.risk_level == RiskLevel.CRITICAL:
            logger.warning(
                f"Soft-deleting critical-risk {resource_type.value} {resource_id} without approval "
                f"(approval threshold is {self.policy.approval_threshold or 'disabled'})"
            )

        state = pre_snapshot_state if pre_snapshot_state is not None else self.resources.get_state(
            resource_type, resource_id
        )
        correlation_id = str(uuid.uuid4())
        snapshot_id = self._snapshot(resource_type, resource_id, state, DeletionType.SOFT, correlation_id, actor)

        try:
            deactivated = self.resources.soft_delete(resource_type, resource_id, actor.id, reason, self.clock())
        except Exception as e:
            logger.error(
                f"Soft delete of {resource_type.value} {resource_id} failed after snapshot {snapshot_id} "
                f"(snapshot left orphaned): {type(e).__name__}: {str(e)}"
            )
            raise MutationFailed(f"Failed to delete {resource_type.value}: {str(e)}") from e
        self._trace(DeletionStage.MUTATED, resource_type, resource_id)

        self._emit(
            action=SOFT_DELETE_ACTIONS[resource_type.value],
            actor=actor,
            resource=AuditResource(type=resource_type.value, id=resource_id),
            payload={
                "resource_name": display_name,
                "deletion_type": DeletionType.SOFT.value,
                "deletion_reason": reason,
                "risk_level": risk_value,
                "snapshot_id": snapshot_id,
                "pre_snapshot": state or {},
                "recoverable": True,
                "deactivated_share_links": deactivated,
            },
            correlation_id=correlation_id,
            client=client,
        )
        self._trace(DeletionStage.DONE, resource_type, resource_id)
        return DeletionResult(
            success=True,
            requires_approval=False,
            correlation_id=correlation_id,
            snapshot_id=snapshot_id,
            risk_level=assessment.risk_level,
            stage=DeletionStage.DONE,
        )

    # Approval workflow

    def request_deletion_approval(
        self,
        actor: Actor,
        resource_type: Union[str, ResourceType],
        resource_id: str,
        display_name: str,
        reason: str,
        risk_level: Optional[Union[str, RiskLevel]] = None,
        metadata: Optional[Dict] = None,
        client: Optional[AuditClient] = None,
    ) -> DeletionResult:
        """File a request to hard-delete a resource.

        The risk level is assessed when the caller does not supply one.
        """
        resource_type = ResourceType(resource_type)
        if actor.is_anonymous:
            self._deny(actor, resource_type, resource_id, display_name, "request_deletion_approval",
                       "Unauthenticated deletion approval request", client)
            return _failure(DeletionStage.AUTHORIZATION_DENIED, MSG_NOT_AUTHENTICATED, Forbidden.code)

        if not self.resources.exists(resource_type, resource_id):
            return _failure(DeletionStage.REQUESTED, f"{resource_type.value.capitalize()} {resource_id} not found",
                            NotFound.code)

        pending = self.approvals.pending_for(resource_type, resource_id)
        if pending:
            return _failure(DeletionStage.BLOCKED_DUPLICATE_PENDING, MSG_ALREADY_PENDING, DuplicatePendingRequest.code,
                            approval_id=pending.id)

        level = RiskLevel(risk_level) if risk_level else self.risk.assess(resource_type, resource_id).risk_level
        return self._file_approval(actor, resource_type, resource_id, display_name, reason, level, metadata, client)

    def decide_approval(
        self,
        actor: Actor,
        approval_id: str,
        decision: Union[str, ApprovalDecision],
        rejection_reason: Optional[str] = None,
        mfa_verified: bool = False,
        client: Optional[AuditClient] = None,
    ) -> DeletionApproval:
        """Approve or reject a pending approval. Only admins may decide.

        Raises:
            Forbidden: the actor is not an admin (the attempt is audited, whether or not
                the approval exists)
            InvalidDecision: unknown decision, or a rejection without a reason
            NotFound: no approval with that id
            SelfApprovalForbidden: the actor requested this deletion themselves
            AlreadyDecided: the approval is no longer pending
            MfaRequired: approving a critical-risk request without verified MFA
        """
        if not actor.is_admin:
            self._deny_approval(actor, approval_id, None, "decide_approval",
                                "Non-admin user attempted to decide a deletion approval", client)
            raise Forbidden("Only admins can decide deletion approvals")

        try:
            decision = ApprovalDecision(decision)
        except ValueError as e:
            raise InvalidDecision(f"Unknown approval decision: {decision}") from e

        approval = self.approvals.get(approval_id)
        if approval is None:
            raise NotFound(f"Deletion approval {approval_id} not found")

        resource_type = ResourceType(approval.resource_type)
        display_name = approval.metadata.get("resource_name", "Unknown")
        if not approval.is_pending:
            raise AlreadyDecided()
        if not self.policy.allow_self_approval and approval.requested_by == actor.id:
            self._deny(actor, resource_type, approval.resource_id, display_name, "decide_approval",
                       "Requester attempted to decide their own deletion approval", client)
            raise SelfApprovalForbidden()
        if decision == ApprovalDecision.REJECTED and not (rejection_reason or "").strip():
            raise InvalidDecision("A rejection reason is required")
        if decision == ApprovalDecision.APPROVED and approval.requires_mfa and not mfa_verified:
            raise MfaRequired()

        decided = self.approvals.decide(approval_id, decision, actor.id, rejection_reason, mfa_verified)

        resource = AuditResource(type=resource_type.value, id=approval.resource_id, path=f"/approvals/{approval_id}")
        if decision == ApprovalDecision.APPROVED:
            self._emit(
                action=AuditAction.DELETE_APPROVAL_GRANTED,
                actor=actor,
                resource=resource,
                payload={
                    "approval_id": approval_id,
                    "resource_type": resource_type.value,
                    "resource_id": approval.resource_id,
                    "approved_by": actor.display_name,
                    "mfa_verified": bool(mfa_verified),
                },
                correlation_id=approval.correlation_id,
                client=client,
            )
        else:
            self._emit(
                action=AuditAction.DELETE_APPROVAL_REJECTED,
                actor=actor,
                resource=resource,
                payload={
                    "approval_id": approval_id,
                    "resource_type": resource_type.value,
                    "resource_id": approval.resource_id,
                    "rejected_by": actor.display_name,
                    "rejection_reason": rejection_reason,
                },
                correlation_id=approval.correlation_id,
                client=client,
            )
        return decided

    # Hard delete

    def execute_hard_delete(
        self,
        actor: Actor,
        approval_id: str,
        display_name: Optional[str] = None,
        reason: Optional[str] = None,
        pre_snapshot_state: Optional[Dict] = None,
        client: Optional[AuditClient] = None,
    ) -> DeletionResult:
        """Irreversibly delete the resource named by an approved DeletionApproval.

        The resource is re-snapshotted at execution time under the approval's
        correlation id, independently of anything captured when the request was filed.

        Raises:
            SnapshotFailed: if the pre-delete snapshot could not be persisted
            MutationFailed: if the physical delete failed
        """
        if not actor.is_admin:
            self._deny_approval(actor, approval_id, display_name, "hard_delete",
                                "Non-admin user attempted hard deletion", client)
            return _failure(DeletionStage.AUTHORIZATION_DENIED, MSG_ADMIN_ONLY, Forbidden.code, approval_id=approval_id)

        approval = self.approvals.get(approval_id)
        if approval is None or approval.status != ApprovalStatus.APPROVED.value:
            return _failure(DeletionStage.AUTHORIZING, MSG_APPROVAL_REQUIRED, ApprovalRequired.code,
                            approval_id=approval_id)

        resource_type = ResourceType(approval.resource_type)
        resource_id = approval.resource_id
        resource_name = display_name or approval.metadata.get("resource_name", "Unknown")

        if not self.resources.exists(resource_type, resource_id):
            return _failure(DeletionStage.AUTHORIZING, f"{resource_type.value.capitalize()} {resource_id} not found",
                            NotFound.code, approval_id=approval_id)
        state = pre_snapshot_state if pre_snapshot_state is not None else self.resources.get_state(
            resource_type, resource_id
        )

        correlation_id = approval.correlation_id
        snapshot_id = self._snapshot(resource_type, resource_id, state, DeletionType.HARD, correlation_id, actor)

        try:
            deleted = self.resources.hard_delete(resource_type, resource_id)
        except Exception as e:
            logger.error(
                f"Hard delete of {resource_type.value} {resource_id} failed after snapshot {snapshot_id}: "
                f"{type(e).__name__}: {str(e)}"
            )
            raise MutationFailed(f"Failed to permanently delete {resource_type.value}: {str(e)}") from e
        if not deleted:
            raise MutationFailed(f"{resource_type.value.capitalize()} {resource_id} disappeared before deletion")
        self._trace(DeletionStage.MUTATED, resource_type, resource_id)

        self._emit(
            action=HARD_DELETE_ACTIONS[resource_type.value],
            actor=actor,
            resource=AuditResource(type=resource_type.value, id=resource_id),
            payload={
                "resource_name": resource_name,
                "deletion_type": DeletionType.HARD.value,
                "deletion_reason": reason or approval.deletion_reason,
                "approval_id": approval_id,
                "snapshot_id": snapshot_id,
                "pre_snapshot": state,
                "recoverable": False,
                "irreversible": True,
            },
            correlation_id=correlation_id,
            client=client,
        )
        return DeletionResult(
            success=True,
            approval_id=approval_id,
            correlation_id=correlation_id,
            snapshot_id=snapshot_id,
            risk_level=approval.risk_level,
            stage=DeletionStage.DONE,
        )

    # Restore

    def restore(
        self,
        actor: Actor,
        resource_type: Union[str, ResourceType],
        resource_id: str,
        display_name: str,
        client: Optional[AuditClient] = None,
    ) -> DeletionResult:
        """Undo a soft delete, returning the resource (and a job's share links) to the active set."""
        resource_type = ResourceType(resource_type)
        if not actor.is_admin:
            self._deny(actor, resource_type, resource_id, display_name, "restore",
                       "Non-admin user attempted restore", client)
            return _failure(DeletionStage.AUTHORIZATION_DENIED, "Only admins can restore resources", Forbidden.code)

        state = self.resources.get_state(resource_type, resource_id)
        if state is None or state.get("deleted_at") is None:
            return _failure(DeletionStage.REQUESTED,
                            f"{resource_type.value.capitalize()} {resource_id} is not soft-deleted", NotFound.code)
        if state.get("erased_at") is not None:
            return _failure(DeletionStage.REQUESTED, "Erased personal data cannot be restored", AlreadyErased.code)

        snapshot = self.snapshots.latest(resource_type, resource_id, DeletionType.SOFT)
        correlation_id = str(uuid.uuid4())
        try:
            reactivated = self.resources.restore(resource_type, resource_id)
        except Exception as e:
            logger.error(f"Restore of {resource_type.value} {resource_id} failed: {type(e).__name__}: {str(e)}")
            raise MutationFailed(f"Failed to restore {resource_type.value}: {str(e)}") from e

        self._emit(
            action=RESTORE_ACTIONS[resource_type.value],
            actor=actor,
            resource=AuditResource(type=resource_type.value, id=resource_id),
            payload={
                "resource_name": display_name,
                "snapshot_id": snapshot.id if snapshot else None,
                "reactivated_share_links": reactivated,
            },
            correlation_id=correlation_id,
            client=client,
        )
        return DeletionResult(
            success=True,
            correlation_id=correlation_id,
            snapshot_id=snapshot.id if snapshot else None,
            stage=DeletionStage.DONE,
        )

    # Personal-data erasure

    def erase_candidate(
        self,
        actor: Actor,
        candidate_id: str,
        reason: str,
        confirmation: str,
        client: Optional[AuditClient] = None,
    ) -> DeletionResult:
        """Erase a candidate's personal data on a data-subject request (GDPR Art. 17, LGPD Art. 18).

        The candidate row is anonymized in place rather than removed, and feedback written
        about the candidate has its content redacted. The full pre-erasure row is
        snapshotted first; the erasure itself cannot be restored.

        Raises:
            SnapshotFailed: if the pre-erasure snapshot could not be persisted (nothing was erased)
            MutationFailed: if the anonymization failed (the snapshot stays orphaned)
        """
        resource_type = ResourceType.CANDIDATE
        if not actor.is_admin:
            self._deny(actor, resource_type, candidate_id, "Unknown", "erase",
                       "Non-admin user attempted personal data erasure", client)
            return _failure(DeletionStage.AUTHORIZATION_DENIED, "Only admins can erase personal data",
                            Forbidden.code)
        if confirmation != ERASURE_CONFIRMATION_PHRASE or not (reason or "").strip():
            return _failure(DeletionStage.REQUESTED, MSG_ERASURE_NOT_CONFIRMED, ErasureNotConfirmed.code)

        state = self.resources.get_state(resource_type, candidate_id)
        if state is None:
            return _failure(DeletionStage.REQUESTED, f"Candidate {candidate_id} not found", NotFound.code)
        if state.get("erased_at") is not None:
            return _failure(DeletionStage.REQUESTED, AlreadyErased.default_message, AlreadyErased.code)

        correlation_id = str(uuid.uuid4())
        resource = AuditResource(type=resource_type.value, id=candidate_id)
        self._emit(
            action=AuditAction.GDPR_ERASURE_REQUEST,
            actor=actor,
            resource=resource,
            payload={
                "requested_by": actor.display_name,
                "erasure_reason": reason,
                "legal_basis": ERASURE_LEGAL_BASIS,
            },
            correlation_id=correlation_id,
            client=client,
        )

        snapshot_id = self._snapshot(resource_type, candidate_id, state, DeletionType.ERASURE, correlation_id, actor)
        try:
            erased = self.resources.anonymize_candidate(candidate_id, actor.id, reason, self.clock())
        except Exception as e:
            logger.error(
                f"Erasure of candidate {candidate_id} failed after snapshot {snapshot_id} "
                f"(snapshot left orphaned): {type(e).__name__}: {str(e)}"
            )
            raise MutationFailed(f"Failed to erase candidate personal data: {str(e)}") from e
        self._trace(DeletionStage.MUTATED, resource_type, candidate_id)

        for feedback_id in erased["redacted_feedback_ids"]:
            self._emit(
                action=AuditAction.RECORD_REDACTED,
                actor=actor,
                resource=AuditResource(type=ResourceType.FEEDBACK.value, id=feedback_id),
                payload={
                    "candidate_id": candidate_id,
                    "redacted_fields": ["content"],
                    "erasure_reason": reason,
                },
                correlation_id=correlation_id,
                client=client,
            )
        self._emit(
            action=AuditAction.GDPR_ERASURE_COMPLETE,
            actor=actor,
            resource=resource,
            payload={
                "erasure_reason": reason,
                "legal_basis": ERASURE_LEGAL_BASIS,
                "snapshot_id": snapshot_id,
                "erased_fields": erased["erased_fields"],
                "redacted_records": len(erased["redacted_feedback_ids"]),
                "recoverable": False,
            },
            correlation_id=correlation_id,
            client=client,
        )
        self._trace(DeletionStage.DONE, resource_type, candidate_id)
        return DeletionResult(
            success=True,
            correlation_id=correlation_id,
            snapshot_id=snapshot_id,
            stage=DeletionStage.DONE,
        )

    # Internals

    def _check_active(self, resource_type: ResourceType, resource_id: str) -> Optional[DeletionResult]:
        state = self.resources.get_state(resource_type, resource_id)
        if state is None:
            return _failure(DeletionStage.REQUESTED,
                            f"{resource_type.value.capitalize()} {resource_id} not found", NotFound.code)
        if state.get("deleted_at") is not None:
            return _failure(DeletionStage.REQUESTED,
                            f"{resource_type.value.capitalize()} {resource_id} is already deleted", NotFound.code)
        return None

    def _file_approval(
        self,
        actor: Actor,
        resource_type: ResourceType,
        resource_id: str,
        display_name: str,
        reason: str,
        risk_level: RiskLevel,
        metadata: Optional[Dict],
        client: Optional[AuditClient],
    ) -> DeletionResult:
        resource = Resource(resource_type=resource_type, resource_id=resource_id, display_name=display_name)
        try:
            approval = self.approvals.request(resource, actor, reason, risk_level, metadata=metadata)
        except DuplicatePendingRequest:
            return _failure(DeletionStage.BLOCKED_DUPLICATE_PENDING, MSG_ALREADY_PENDING,
                            DuplicatePendingRequest.code)
        except PersistenceError as e:
            return _failure(DeletionStage.PENDING_APPROVAL, e.message, e.code)

        self._trace(DeletionStage.PENDING_APPROVAL, resource_type, resource_id)
        self._emit(
            action=AuditAction.DELETE_APPROVAL_REQUEST,
            actor=actor,
            resource=AuditResource(type=resource_type.value, id=resource_id, path=f"/approvals/{approval.id}"),
            payload={
                "approval_id": approval.id,
                "resource_name": display_name,
                "requested_by": actor.display_name,
                "deletion_reason": reason,
                "risk_level": approval.risk_level,
                "requires_mfa": approval.requires_mfa,
                "requires_approval": True,
            },
            correlation_id=approval.correlation_id,
            client=client,
        )
        return DeletionResult(
            success=True,
            requires_approval=True,
            approval_id=approval.id,
            correlation_id=approval.correlation_id,
            risk_level=approval.risk_level,
            stage=DeletionStage.PENDING_APPROVAL,
        )

    def _snapshot(
        self,
        resource_type: ResourceType,
        resource_id: str,
        state: Optional[Dict],
        deletion_type: DeletionType,
        correlation_id: str,
        actor: Actor,
    ) -> str:
        try:
            snapshot_id = self.snapshots.capture(
                resource_type, resource_id, state or {}, deletion_type, correlation_id, actor.id
            )
        except PersistenceError as e:
            logger.error(f"Aborting {deletion_type.value} delete of {resource_type.value} {resource_id}: {e.message}")
            raise SnapshotFailed() from e
        self._trace(DeletionStage.SNAPSHOTTED, resource_type, resource_id)
        return snapshot_id

    def _deny(
        self,
        actor: Actor,
        resource_type: Union[str, ResourceType],
        resource_id: str,
        display_name: str,
        operation: str,
        reason: str,
        client: Optional[AuditClient],
    ) -> None:
        type_value = getattr(resource_type, "value", resource_type)
        logger.warning(f"Denied {operation} of {type_value} {resource_id} for actor {actor.id}")
        self._emit(
            action=AuditAction.DELETE_ATTEMPT_DENIED,
            actor=actor,
            resource=AuditResource(type=type_value, id=resource_id),
            payload={
                "resource_name": display_name,
                "attempted_by": actor.display_name,
                "attempted_operation": operation,
                "denial_reason": reason,
                "security_violation": True,
            },
            correlation_id=str(uuid.uuid4()),
            client=client,
        )

    def _deny_approval(
        self,
        actor: Actor,
        approval_id: str,
        display_name: Optional[str],
        operation: str,
        reason: str,
        client: Optional[AuditClient],
    ) -> None:
        """Record a denied approval operation against the approval's resource, or the approval id."""
        approval = self.approvals.get(approval_id)
        if approval is None:
            self._deny(actor, APPROVAL_RESOURCE_TYPE, approval_id, display_name or "Unknown", operation, reason, client)
            return
        self._deny(actor, ResourceType(approval.resource_type), approval.resource_id,
                   display_name or approval.metadata.get("resource_name", "Unknown"), operation, reason, client)

    def _emit(
        self,
        action: AuditAction,
        actor: Actor,
        resource: AuditResource,
        payload: Dict,
        correlation_id: str,
        client: Optional[AuditClient],
    ) -> bool:
        try:
            event = AuditEvent(
                action=action,
                actor=actor.audit_dict(),
                resource=resource,
                payload=payload,
                client=client,
                correlation_id=correlation_id,
            )
        except ValidationError as e:
            logger.error(
                f"Audit event {action.value} (correlation {correlation_id}) violates its payload contract: "
                f"{type(e).__name__}: {str(e)}"
            )
            return False
        recorded = self.audit.try_record(event)
        if recorded:
            self._trace(DeletionStage.LOGGED, resource.type, resource.id)
        return recorded

    def _trace(self, stage: DeletionStage, resource_type, resource_id: Optional[str]) -> None:
        type_value = getattr(resource_type, "value", resource_type)
        logger.debug(f"Deletion of {type_value} {resource_id}: {stage.value}")
