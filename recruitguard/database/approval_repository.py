"""Repository for DeletionApproval rows.

The single-pending invariant lives in the store: the partial unique index
`uq_deletion_approvals_pending` rejects a second pending row for the same resource,
and decisions are conditional updates that only match pending rows.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recruitguard.database.models import DeletionApprovalDB, enum_to_value
from recruitguard.governance.errors import (
    AlreadyDecided,
    DuplicatePendingRequest,
    NotFound,
    PersistenceError,
)
from recruitguard.models.actor import Actor
from recruitguard.models.approval import ApprovalDecision, ApprovalStatus, DeletionApproval
from recruitguard.models.constants import MFA_REQUIRED_RISK_LEVEL
from recruitguard.models.resource import Resource, ResourceType, RiskLevel

logger = logging.getLogger(__name__)


class ApprovalRepository:
    """Repository for DeletionApproval database operations."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock

    def create(
        self,
        resource_type: ResourceType,
        resource_id: str,
        requested_by: str,
        deletion_reason: str,
        risk_level: RiskLevel,
        correlation_id: Optional[str] = None,
        metadata: Optional[Dict] = None,
    ) -> DeletionApproval:
        """Insert a pending approval.

        Raises:
            DuplicatePendingRequest: if a pending approval already exists for the resource
            PersistenceError: on any other write failure
        """
        risk_value = enum_to_value(risk_level)
        approval_db = DeletionApprovalDB(
            id=str(uuid.uuid4()),
            resource_type=enum_to_value(resource_type),
            resource_id=resource_id,
            requested_by=requested_by,
            deletion_reason=deletion_reason,
            risk_level=risk_value,
            requires_mfa=risk_value == MFA_REQUIRED_RISK_LEVEL.value,
            status=ApprovalStatus.PENDING.value,
            correlation_id=correlation_id or str(uuid.uuid4()),
            metadata_=metadata or {},
            requested_at=self.clock(),
        )
        try:
            self.db.add(approval_db)
            self.db.commit()
            self.db.refresh(approval_db)
            logger.debug(f"Created deletion approval {approval_db.id} for {approval_db.resource_type} {resource_id}")
            return approval_db.to_pydantic()
        except IntegrityError as e:
            self.db.rollback()
            logger.info(f"Rejected duplicate pending approval for {enum_to_value(resource_type)} {resource_id}")
            raise DuplicatePendingRequest() from e
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Failed to create deletion approval for {enum_to_value(resource_type)} {resource_id}: "
                f"{type(e).__name__}: {str(e)}"
            )
            raise PersistenceError("Deletion approval was not persisted") from e

    def request(
        self,
        resource: Resource,
        actor: Actor,
        reason: str,
        risk_level: RiskLevel,
        metadata: Optional[Dict] = None,
    ) -> DeletionApproval:
        """File a pending approval for `resource` on behalf of `actor`.

        The display name is kept in the metadata for later audit entries.
        """
        return self.create(
            resource.resource_type,
            resource.resource_id,
            actor.id,
            reason,
            risk_level,
            metadata={**(metadata or {}), "resource_name": resource.display_name},
        )

    def get(self, approval_id: str) -> Optional[DeletionApproval]:
        approval_db = self.db.query(DeletionApprovalDB).filter(DeletionApprovalDB.id == approval_id).first()
        return approval_db.to_pydantic() if approval_db else None

    def pending_for(self, resource_type: ResourceType, resource_id: str) -> Optional[DeletionApproval]:
        approval_db = self.db.query(DeletionApprovalDB).filter(
            DeletionApprovalDB.resource_type == enum_to_value(resource_type),
            DeletionApprovalDB.resource_id == resource_id,
            DeletionApprovalDB.status == ApprovalStatus.PENDING.value,
        ).first()
        return approval_db.to_pydantic() if approval_db else None

    def list(self, status: Optional[ApprovalStatus] = None) -> List[DeletionApproval]:
        """Approvals, newest request first, optionally filtered by status."""
        query = self.db.query(DeletionApprovalDB)
        if status is not None:
            query = query.filter(DeletionApprovalDB.status == enum_to_value(status))
        return [row.to_pydantic() for row in query.order_by(desc(DeletionApprovalDB.requested_at)).all()]

    def decide(
        self,
        approval_id: str,
        decision: ApprovalDecision,
        decided_by: str,
        rejection_reason: Optional[str] = None,
        mfa_verified: bool = False,
    ) -> DeletionApproval:
        """Move a pending approval to its terminal state.

        Raises:
            NotFound: if no approval has that id
            AlreadyDecided: if the approval is no longer pending
        """
        decision_value = ApprovalDecision(enum_to_value(decision)).value
        try:
            affected = (
                self.db.query(DeletionApprovalDB)
                .filter(
                    DeletionApprovalDB.id == approval_id,
                    DeletionApprovalDB.status == ApprovalStatus.PENDING.value,
                )
                .update(
                    {
                        DeletionApprovalDB.status: decision_value,
                        DeletionApprovalDB.decided_by: decided_by,
                        DeletionApprovalDB.decided_at: self.clock(),
                        DeletionApprovalDB.rejection_reason: rejection_reason,
                        DeletionApprovalDB.mfa_verified: bool(mfa_verified),
                    },
                    synchronize_session=False,
                )
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to decide deletion approval {approval_id}: {type(e).__name__}: {str(e)}")
            raise PersistenceError("Approval decision was not persisted") from e

        if affected == 0:
            if self.get(approval_id) is None:
                raise NotFound(f"Deletion approval {approval_id} not found")
            raise AlreadyDecided()

        self.db.expire_all()
        logger.debug(f"Deletion approval {approval_id} {decision_value} by {decided_by}")
        return self.get(approval_id)
