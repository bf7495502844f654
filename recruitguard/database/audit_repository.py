"""Audit log: append-only, hash-chained record of deletion-governance events.

Each row stores the hash of its predecessor and a SHA-256 over its own canonical
content, so any later edit, insertion or removal breaks `verify_chain()`.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recruitguard.database.models import AuditEventDB, enum_to_value
from recruitguard.governance.errors import AuditWriteError
from recruitguard.models.audit_event import AuditEvent
from recruitguard.models.constants import AUDIT_APPEND_MAX_ATTEMPTS, AUDIT_GENESIS_HASH
from recruitguard.models.resource import ResourceType

logger = logging.getLogger(__name__)


@dataclass
class ChainVerification:
    """Outcome of an audit chain verification."""
    valid: bool
    checked: int
    first_broken_sequence: Optional[int] = None


def _utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def compute_event_hash(
    prev_hash: str,
    sequence: int,
    timestamp: datetime,
    action: str,
    actor: dict,
    resource: dict,
    payload: dict,
    client: Optional[dict],
    correlation_id: str,
) -> str:
    """SHA-256 over the previous hash and the event's canonical JSON form."""
    canonical = json.dumps(
        {
            "sequence": sequence,
            "timestamp": timestamp.isoformat(),
            "action": action,
            "actor": actor,
            "resource": resource,
            "payload": payload,
            "client": client,
            "correlation_id": correlation_id,
        },
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256((prev_hash + canonical).encode("utf-8")).hexdigest()


def _row_hash(row: AuditEventDB) -> str:
    return compute_event_hash(
        row.prev_hash,
        row.sequence,
        row.timestamp,
        row.action,
        row.actor,
        row.resource,
        row.payload or {},
        row.client,
        row.correlation_id,
    )


class AuditRepository:
    """Append-only audit log. Rows are never updated or deleted here."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock

    def record(self, event: AuditEvent) -> AuditEvent:
        """Append an event to the chain and return it as stored.

        The timestamp is server-assigned and never earlier than the previous event's.
        A lost race for the next sequence number is retried a bounded number of times.

        Raises:
            AuditWriteError: if the event could not be written
        """
        resource = event.resource.model_dump(mode="json")
        client = event.client.model_dump(mode="json") if event.client else None
        action = enum_to_value(event.action)

        for attempt in range(1, AUDIT_APPEND_MAX_ATTEMPTS + 1):
            try:
                last = self.db.query(AuditEventDB).order_by(desc(AuditEventDB.sequence)).first()
                sequence = last.sequence + 1 if last else 1
                prev_hash = last.event_hash if last else AUDIT_GENESIS_HASH
                timestamp = _utc_naive(self.clock())
                if last and timestamp < last.timestamp:
                    timestamp = last.timestamp

                row = AuditEventDB(
                    sequence=sequence,
                    timestamp=timestamp,
                    action=action,
                    actor=event.actor,
                    resource_type=resource["type"],
                    resource_id=resource.get("id"),
                    resource=resource,
                    payload=event.payload,
                    client=client,
                    correlation_id=event.correlation_id,
                    prev_hash=prev_hash,
                )
                row.event_hash = _row_hash(row)
                self.db.add(row)
                self.db.commit()
                self.db.refresh(row)
                logger.debug(f"Recorded audit event {action} #{sequence} ({event.correlation_id})")
                return row.to_pydantic()
            except IntegrityError as e:
                self.db.rollback()
                logger.warning(f"Audit append lost sequence race (attempt {attempt}): {str(e)}")
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to record audit event {action}: {type(e).__name__}: {str(e)}")
                raise AuditWriteError(f"Audit event {action} could not be written") from e

        raise AuditWriteError(f"Audit event {action} could not be appended after {AUDIT_APPEND_MAX_ATTEMPTS} attempts")

    def try_record(self, event: AuditEvent) -> bool:
        """Best-effort record: failures are reported to the log, never raised."""
        try:
            self.record(event)
            return True
        except AuditWriteError as e:
            logger.error(
                f"Audit write failed for {enum_to_value(event.action)} "
                f"(correlation {event.correlation_id}): {e.message}"
            )
            return False

    def query(
        self,
        resource_type: ResourceType,
        resource_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[AuditEvent]:
        """Events about one resource, oldest first. Paging is up to the caller."""
        query = (
            self.db.query(AuditEventDB)
            .filter(
                AuditEventDB.resource_type == enum_to_value(resource_type),
                AuditEventDB.resource_id == resource_id,
            )
            .order_by(AuditEventDB.timestamp, AuditEventDB.sequence)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        return [row.to_pydantic() for row in query.all()]

    def by_correlation(self, correlation_id: str) -> List[AuditEvent]:
        """All events of one logical operation, oldest first."""
        rows = (
            self.db.query(AuditEventDB)
            .filter(AuditEventDB.correlation_id == correlation_id)
            .order_by(AuditEventDB.sequence)
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def verify_chain(self) -> ChainVerification:
        """Recompute every hash and check the links between consecutive events."""
        expected_prev = AUDIT_GENESIS_HASH
        expected_sequence = 1
        checked = 0
        for row in self.db.query(AuditEventDB).order_by(AuditEventDB.sequence).yield_per(500):
            if (
                row.sequence != expected_sequence
                or row.prev_hash != expected_prev
                or row.event_hash != _row_hash(row)
            ):
                logger.error(f"Audit chain broken at sequence {row.sequence}")
                return ChainVerification(valid=False, checked=checked, first_broken_sequence=row.sequence)
            expected_prev = row.event_hash
            expected_sequence += 1
            checked += 1
        return ChainVerification(valid=True, checked=checked)
