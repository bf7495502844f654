"""Repository for the deletable resources (candidates, jobs, feedback) and job share links."""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Union

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from recruitguard.database.models import (
    RESOURCE_MODELS,
    CandidateDB,
    FeedbackDB,
    ShareLinkDB,
)
from recruitguard.models.constants import ERASED_FEEDBACK_CONTENT
from recruitguard.models.resource import DeletionType, ResourceType

logger = logging.getLogger(__name__)


def _type_value(resource_type: Union[str, ResourceType]) -> str:
    return ResourceType(resource_type).value


class ResourceRepository:
    """Persistence adapter the deletion core uses to inspect and mutate resources."""

    def __init__(self, db: Session):
        self.db = db

    def _model(self, resource_type: Union[str, ResourceType]):
        return RESOURCE_MODELS[_type_value(resource_type)]

    def _get_row(self, resource_type, resource_id: str, include_deleted: bool = True):
        model = self._model(resource_type)
        query = self.db.query(model).filter(model.id == resource_id)
        if not include_deleted:
            query = query.filter(model.deleted_at.is_(None))
        return query.first()

    def exists(self, resource_type, resource_id: str) -> bool:
        return self._get_row(resource_type, resource_id) is not None

    def get_state(self, resource_type, resource_id: str) -> Optional[Dict]:
        """Serialized current row, deleted or not. None if the row does not exist."""
        row = self._get_row(resource_type, resource_id)
        return row.to_snapshot_dict() if row else None

    def count_active_dependents(self, resource_type, resource_id: str) -> int:
        """Count non-deleted records that reference the resource.

        job -> candidates in its pipeline, candidate -> feedback on it, feedback -> none.
        """
        type_value = _type_value(resource_type)
        try:
            if type_value == ResourceType.JOB.value:
                return int(
                    self.db.query(func.count(CandidateDB.id))
                    .filter(CandidateDB.job_id == resource_id, CandidateDB.deleted_at.is_(None))
                    .scalar()
                    or 0
                )
            if type_value == ResourceType.CANDIDATE.value:
                return int(
                    self.db.query(func.count(FeedbackDB.id))
                    .filter(FeedbackDB.candidate_id == resource_id, FeedbackDB.deleted_at.is_(None))
                    .scalar()
                    or 0
                )
            return 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to count dependents of {type_value} {resource_id}: {type(e).__name__}: {str(e)}")
            raise

    def soft_delete(self, resource_type, resource_id: str, actor_id: str, reason: str, at: datetime) -> int:
        """Mark an active resource as soft-deleted.

        For jobs the job's share links are deactivated in the same commit. Returns the
        number of share links deactivated.

        Raises:
            LookupError: if no active resource exists with that id
        """
        type_value = _type_value(resource_type)
        row = self._get_row(type_value, resource_id, include_deleted=False)
        if not row:
            raise LookupError(f"Active {type_value} {resource_id} not found")

        try:
            row.soft_delete(actor_id, reason, at)
            deactivated = 0
            if type_value == ResourceType.JOB.value:
                deactivated = (
                    self.db.query(ShareLinkDB)
                    .filter(ShareLinkDB.job_id == resource_id, ShareLinkDB.deleted.is_(False))
                    .update(
                        {
                            ShareLinkDB.active: False,
                            ShareLinkDB.deleted: True,
                            ShareLinkDB.deleted_at: at,
                            ShareLinkDB.deleted_by: actor_id,
                        },
                        synchronize_session=False,
                    )
                )
            self.db.commit()
            logger.debug(f"Soft-deleted {type_value} {resource_id} ({deactivated} share links deactivated)")
            return int(deactivated)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to soft-delete {type_value} {resource_id}: {type(e).__name__}: {str(e)}")
            raise

    def restore(self, resource_type, resource_id: str) -> int:
        """Clear soft-delete markers; reactivate share links deactivated by the same deletion.

        Returns the number of share links reactivated.

        Raises:
            LookupError: if the resource does not exist or is not soft-deleted
        """
        type_value = _type_value(resource_type)
        row = self._get_row(type_value, resource_id)
        if not row or row.deleted_at is None:
            raise LookupError(f"Soft-deleted {type_value} {resource_id} not found")

        try:
            deleted_at = row.deleted_at
            row.restore()
            reactivated = 0
            if type_value == ResourceType.JOB.value:
                reactivated = (
                    self.db.query(ShareLinkDB)
                    .filter(
                        ShareLinkDB.job_id == resource_id,
                        ShareLinkDB.deleted.is_(True),
                        ShareLinkDB.deleted_at == deleted_at,
                    )
                    .update(
                        {
                            ShareLinkDB.active: True,
                            ShareLinkDB.deleted: False,
                            ShareLinkDB.deleted_at: None,
                            ShareLinkDB.deleted_by: None,
                        },
                        synchronize_session=False,
                    )
                )
            self.db.commit()
            logger.debug(f"Restored {type_value} {resource_id} ({reactivated} share links reactivated)")
            return int(reactivated)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to restore {type_value} {resource_id}: {type(e).__name__}: {str(e)}")
            raise

    def hard_delete(self, resource_type, resource_id: str) -> bool:
        """Physically delete a resource row (deleted or not). Irreversible."""
        type_value = _type_value(resource_type)
        model = self._model(type_value)
        try:
            affected = self.db.query(model).filter(model.id == resource_id).delete(synchronize_session=False)
            self.db.commit()
            logger.debug(f"Hard-deleted {type_value} {resource_id}")
            return affected > 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to hard-delete {type_value} {resource_id}: {type(e).__name__}: {str(e)}")
            raise

    def anonymize_candidate(self, candidate_id: str, actor_id: str, reason: str, at: datetime) -> Dict:
        """Erase a candidate's personal data and the content of feedback written about them.

        Candidate and feedback rows are kept (anonymized) in one commit. Returns the
        erased candidate columns and the ids of the redacted feedback rows.

        Raises:
            LookupError: if the candidate does not exist or was already erased
        """
        row = self._get_row(ResourceType.CANDIDATE, candidate_id)
        if not row or row.is_erased:
            raise LookupError(f"Unerased candidate {candidate_id} not found")

        try:
            erased_fields = row.anonymize(actor_id, reason, at)
            feedbacks = self.db.query(FeedbackDB).filter(FeedbackDB.candidate_id == candidate_id).all()
            for feedback in feedbacks:
                feedback.content = ERASED_FEEDBACK_CONTENT
            self.db.commit()
            logger.debug(f"Erased candidate {candidate_id} ({len(feedbacks)} feedback records redacted)")
            return {"erased_fields": erased_fields, "redacted_feedback_ids": [f.id for f in feedbacks]}
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to erase candidate {candidate_id}: {type(e).__name__}: {str(e)}")
            raise

    def list_soft_deleted(self, resource_type: Optional[ResourceType] = None) -> List[Dict]:
        """Soft-deleted rows (newest deletion first), for the deletion management view.

        Erased candidates are excluded: they cannot be restored.
        """
        type_values = [_type_value(resource_type)] if resource_type else list(RESOURCE_MODELS)
        items: List[Dict] = []
        for type_value in type_values:
            model = RESOURCE_MODELS[type_value]
            query = self.db.query(model).filter(
                model.deleted_at.is_not(None),
                or_(model.deletion_type.is_(None), model.deletion_type != DeletionType.ERASURE.value),
            )
            for row in query.all():
                items.append({"resource_type": type_value, "resource_id": row.id, "state": row.to_snapshot_dict()})
        items.sort(key=lambda item: item["state"]["deleted_at"], reverse=True)
        return items
