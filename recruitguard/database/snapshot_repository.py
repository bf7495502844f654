"""Snapshot store: durable pre-delete copies of resources."""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from recruitguard.database.models import SnapshotDB, enum_to_value
from recruitguard.governance.errors import PersistenceError
from recruitguard.models.resource import ResourceType, DeletionType
from recruitguard.models.snapshot import Snapshot

logger = logging.getLogger(__name__)


class SnapshotRepository:
    """Append-only store of pre-delete snapshots.

    `capture` commits synchronously; the orchestrator must not mutate a resource
    until it has returned.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock

    def capture(
        self,
        resource_type: ResourceType,
        resource_id: str,
        state: Dict,
        deletion_type: DeletionType,
        correlation_id: str,
        deleted_by: str,
    ) -> str:
        """Durably persist a snapshot and return its id.

        Raises:
            PersistenceError: if the snapshot could not be committed
        """
        snapshot_db = SnapshotDB(
            resource_type=enum_to_value(resource_type),
            resource_id=resource_id,
            snapshot_data=state or {},
            deletion_type=enum_to_value(deletion_type),
            correlation_id=correlation_id,
            deleted_by=deleted_by,
            captured_at=self.clock(),
        )
        try:
            self.db.add(snapshot_db)
            self.db.commit()
            self.db.refresh(snapshot_db)
            logger.debug(
                f"Captured {snapshot_db.deletion_type} snapshot {snapshot_db.id} "
                f"for {snapshot_db.resource_type} {resource_id}"
            )
            return snapshot_db.id
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Failed to capture snapshot for {enum_to_value(resource_type)} {resource_id}: "
                f"{type(e).__name__}: {str(e)}"
            )
            raise PersistenceError(f"Snapshot for {enum_to_value(resource_type)} {resource_id} was not persisted") from e

    def get(self, snapshot_id: str) -> Optional[Snapshot]:
        snapshot_db = self.db.query(SnapshotDB).filter(SnapshotDB.id == snapshot_id).first()
        return snapshot_db.to_pydantic() if snapshot_db else None

    def for_correlation(self, correlation_id: str) -> List[Snapshot]:
        """All snapshots taken under one correlation id, oldest first."""
        rows = (
            self.db.query(SnapshotDB)
            .filter(SnapshotDB.correlation_id == correlation_id)
            .order_by(SnapshotDB.captured_at)
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def latest(
        self,
        resource_type: ResourceType,
        resource_id: str,
        deletion_type: Optional[DeletionType] = None,
    ) -> Optional[Snapshot]:
        """Most recent snapshot of a resource, optionally of one deletion type."""
        query = self.db.query(SnapshotDB).filter(
            SnapshotDB.resource_type == enum_to_value(resource_type),
            SnapshotDB.resource_id == resource_id,
        )
        if deletion_type is not None:
            query = query.filter(SnapshotDB.deletion_type == enum_to_value(deletion_type))
        snapshot_db = query.order_by(desc(SnapshotDB.captured_at)).first()
        return snapshot_db.to_pydantic() if snapshot_db else None
