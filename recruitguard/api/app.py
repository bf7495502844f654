"""FastAPI web application for recruitguard."""

from typing import Any, Dict, List, Optional
from fastapi import Depends, FastAPI, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from recruitguard.auth.dependencies import get_audit_client, get_current_actor, get_mfa_verified
from recruitguard.database.database import get_db, init_db
from recruitguard.governance.errors import DeletionError
from recruitguard.governance.orchestrator import DeletionOrchestrator, DeletionResult
from recruitguard.governance.policy import DeletionPolicy
from recruitguard.models.actor import Actor
from recruitguard.models.approval import ApprovalDecision, ApprovalStatus, DeletionApproval
from recruitguard.models.audit_event import AuditClient, AuditEvent
from recruitguard.models.constants import AUDIT_DEFAULT_PAGE_SIZE, AUDIT_MAX_PAGE_SIZE, MSG_NOT_AUTHENTICATED
from recruitguard.models.resource import ResourceType, RiskLevel

app = FastAPI(
    title="recruitguard API",
    description="Deletion governance and audit for the recruiting CRM",
    version="0.1.0",
)

_STATUS_BY_CODE = {
    "forbidden": status.HTTP_403_FORBIDDEN,
    "self_approval_forbidden": status.HTTP_403_FORBIDDEN,
    "already_pending": status.HTTP_409_CONFLICT,
    "already_decided": status.HTTP_409_CONFLICT,
    "already_erased": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "approval_required": 422,
    "mfa_required": 422,
    "invalid_decision": 422,
    "erasure_not_confirmed": 422,
}


def _http_error(code: Optional[str], message: Optional[str]) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_CODE.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=message or "Deletion failed",
    )


def _unwrap(result: DeletionResult) -> DeletionResult:
    if not result.success:
        raise _http_error(result.error_code, result.error)
    return result


def _require_authenticated(actor: Actor) -> None:
    if actor.is_anonymous:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=MSG_NOT_AUTHENTICATED,
            headers={"WWW-Authenticate": "Bearer"},
        )


def _require_admin(actor: Actor) -> None:
    _require_authenticated(actor)
    if not actor.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")


def get_orchestrator(db: Session = Depends(get_db)) -> DeletionOrchestrator:
    return DeletionOrchestrator(db, policy=DeletionPolicy.from_env())


@app.on_event("startup")
async def startup_event():
    init_db()


# Request / response models
class DeleteRequest(BaseModel):
    """Request to soft-delete a resource."""
    resource_type: ResourceType
    resource_id: str = Field(..., min_length=1)
    display_name: str = Field("Unknown", description="Name shown in audit entries")
    reason: str = Field(..., min_length=1, description="Why the resource is being deleted")
    pre_snapshot_state: Optional[Dict[str, Any]] = Field(None, description="Caller-serialized pre-delete state")


class RestoreRequest(BaseModel):
    """Request to restore a soft-deleted resource."""
    display_name: str = Field("Unknown", description="Name shown in audit entries")


class ApprovalCreateRequest(BaseModel):
    """Request for permission to hard-delete a resource."""
    resource_type: ResourceType
    resource_id: str = Field(..., min_length=1)
    display_name: str = Field("Unknown", description="Name shown in audit entries")
    reason: str = Field(..., min_length=1, description="Why the resource should be deleted")
    risk_level: Optional[RiskLevel] = Field(None, description="Assessed when omitted")
    metadata: Optional[Dict[str, Any]] = None


class DecisionRequest(BaseModel):
    """Approve or reject a pending deletion approval."""
    decision: ApprovalDecision
    rejection_reason: Optional[str] = Field(None, description="Required when rejecting")


class ExecuteRequest(BaseModel):
    """Execute an approved hard delete."""
    display_name: Optional[str] = None
    reason: Optional[str] = None


class ErasureRequest(BaseModel):
    """Data-subject request to erase a candidate's personal data."""
    reason: str = Field(..., min_length=1, description="Why the personal data is being erased")
    confirmation: str = Field(..., description="Must be the erasure confirmation phrase")


class RiskResponse(BaseModel):
    """Risk assessment for a prospective deletion."""
    resource_type: ResourceType
    resource_id: str
    risk_level: RiskLevel
    reason: str
    dependent_count: int
    assessed: bool


class SoftDeletedItem(BaseModel):
    """A soft-deleted resource awaiting restore or permanent deletion."""
    resource_type: ResourceType
    resource_id: str
    state: Dict[str, Any]


class ChainVerificationResponse(BaseModel):
    """Outcome of an audit chain verification."""
    valid: bool
    checked: int
    first_broken_sequence: Optional[int] = None


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/deletions/soft-deleted", response_model=List[SoftDeletedItem])
async def list_soft_deleted(
    resource_type: Optional[ResourceType] = None,
    actor: Actor = Depends(get_current_actor),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """List soft-deleted resources, newest deletion first (admin only)."""
    _require_admin(actor)
    return orchestrator.list_soft_deleted(resource_type)


@app.get("/deletions/{resource_type}/{resource_id}/risk", response_model=RiskResponse)
async def assess_risk(
    resource_type: ResourceType,
    resource_id: str,
    actor: Actor = Depends(get_current_actor),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """Assess the blast radius of deleting a resource."""
    _require_authenticated(actor)
    if not orchestrator.resources.exists(resource_type, resource_id):
        raise HTTPException(status_code=404, detail=f"{resource_type.value.capitalize()} {resource_id} not found")
    assessment = orchestrator.assess_deletion_risk(resource_type, resource_id)
    return RiskResponse(
        resource_type=resource_type,
        resource_id=resource_id,
        risk_level=assessment.risk_level,
        reason=assessment.reason,
        dependent_count=assessment.dependent_count,
        assessed=assessment.assessed,
    )


@app.post("/deletions", response_model=DeletionResult)
async def delete_resource(
    request: DeleteRequest,
    actor: Actor = Depends(get_current_actor),
    client: AuditClient = Depends(get_audit_client),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """Soft-delete a resource, or file an approval when policy requires one."""
    try:
        result = orchestrator.handle_delete(
            actor,
            request.resource_type,
            request.resource_id,
            request.display_name,
            request.reason,
            pre_snapshot_state=request.pre_snapshot_state,
            client=client,
        )
    except DeletionError as e:
        raise _http_error(e.code, e.message) from e
    return _unwrap(result)


@app.post("/deletions/{resource_type}/{resource_id}/restore", response_model=DeletionResult)
async def restore_resource(
    resource_type: ResourceType,
    resource_id: str,
    request: Optional[RestoreRequest] = None,
    actor: Actor = Depends(get_current_actor),
    client: AuditClient = Depends(get_audit_client),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """Restore a soft-deleted resource."""
    display_name = request.display_name if request else "Unknown"
    try:
        result = orchestrator.restore(actor, resource_type, resource_id, display_name, client=client)
    except DeletionError as e:
        raise _http_error(e.code, e.message) from e
    return _unwrap(result)


@app.post("/approvals", response_model=DeletionResult, status_code=201)
async def request_approval(
    request: ApprovalCreateRequest,
    actor: Actor = Depends(get_current_actor),
    client: AuditClient = Depends(get_audit_client),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """File a deletion approval request."""
    result = orchestrator.request_deletion_approval(
        actor,
        request.resource_type,
        request.resource_id,
        request.display_name,
        request.reason,
        risk_level=request.risk_level,
        metadata=request.metadata,
        client=client,
    )
    if not result.success and actor.is_anonymous:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.error,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _unwrap(result)


@app.get("/approvals", response_model=List[DeletionApproval])
async def list_approvals(
    status_filter: Optional[ApprovalStatus] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """List deletion approvals, newest first (admin only)."""
    _require_admin(actor)
    return orchestrator.list_approvals(status_filter)


@app.post("/approvals/{approval_id}/decision", response_model=DeletionApproval)
async def decide_approval(
    approval_id: str,
    request: DecisionRequest,
    actor: Actor = Depends(get_current_actor),
    mfa_verified: bool = Depends(get_mfa_verified),
    client: AuditClient = Depends(get_audit_client),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """Approve or reject a pending approval.

    MFA status is read from the bearer token, never from the request body.
    """
    try:
        return orchestrator.decide_approval(
            actor,
            approval_id,
            request.decision,
            rejection_reason=request.rejection_reason,
            mfa_verified=mfa_verified,
            client=client,
        )
    except DeletionError as e:
        raise _http_error(e.code, e.message) from e


@app.post("/approvals/{approval_id}/execute", response_model=DeletionResult)
async def execute_approval(
    approval_id: str,
    request: Optional[ExecuteRequest] = None,
    actor: Actor = Depends(get_current_actor),
    client: AuditClient = Depends(get_audit_client),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """Permanently delete the resource named by an approved approval."""
    request = request or ExecuteRequest()
    try:
        result = orchestrator.execute_hard_delete(
            actor,
            approval_id,
            display_name=request.display_name,
            reason=request.reason,
            client=client,
        )
    except DeletionError as e:
        raise _http_error(e.code, e.message) from e
    return _unwrap(result)


@app.get("/audit/verify", response_model=ChainVerificationResponse)
async def verify_audit_chain(
    actor: Actor = Depends(get_current_actor),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """Verify the integrity of the audit hash chain (admin only)."""
    _require_admin(actor)
    verification = orchestrator.verify_audit_chain()
    return ChainVerificationResponse(
        valid=verification.valid,
        checked=verification.checked,
        first_broken_sequence=verification.first_broken_sequence,
    )


@app.get("/audit/{resource_type}/{resource_id}", response_model=List[AuditEvent])
async def audit_history(
    resource_type: ResourceType,
    resource_id: str,
    limit: int = Query(AUDIT_DEFAULT_PAGE_SIZE, ge=1, le=AUDIT_MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """Audit events about one resource, oldest first."""
    _require_authenticated(actor)
    return orchestrator.query_audit_history(resource_type, resource_id, limit=limit, offset=offset)


@app.post("/candidates/{candidate_id}/erasure", response_model=DeletionResult)
async def erase_candidate(
    candidate_id: str,
    request: ErasureRequest,
    actor: Actor = Depends(get_current_actor),
    client: AuditClient = Depends(get_audit_client),
    orchestrator: DeletionOrchestrator = Depends(get_orchestrator),
):
    """Anonymize a candidate's personal data (admin only, irreversible)."""
    _require_authenticated(actor)
    try:
        result = orchestrator.erase_candidate(
            actor,
            candidate_id,
            request.reason,
            request.confirmation,
            client=client,
        )
    except DeletionError as e:
        raise _http_error(e.code, e.message) from e
    return _unwrap(result)
