"""SQLAlchemy database models for recruitguard."""

from datetime import date, datetime
from typing import Union, TypeVar, Type
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, ForeignKey, Index, text

from recruitguard.database.database import Base
from recruitguard.models.user import UserRole
from recruitguard.models.resource import ResourceType, DeletionType, RiskLevel
from recruitguard.models.approval import ApprovalStatus
from recruitguard.models.constants import ERASED_EMAIL_DOMAIN, ERASED_NAME

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value)
    except (ValueError, AttributeError):
        return default


def _json_safe(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class SoftDeleteMixin:
    """Soft-delete markers shared by every deletable resource table."""

    deleted_at = Column(DateTime, nullable=True, index=True)
    deleted_by = Column(String, nullable=True)
    deleted_reason = Column(String, nullable=True)
    deletion_type = Column(String, nullable=True)

    def soft_delete(self, actor_id: str, reason: str, at: datetime) -> None:
        """Mark this record as deleted, leaving the row physically present."""
        self.deleted_at = at
        self.deleted_by = actor_id
        self.deleted_reason = reason
        self.deletion_type = DeletionType.SOFT.value

    def restore(self) -> None:
        """Clear the soft-delete markers."""
        self.deleted_at = None
        self.deleted_by = None
        self.deleted_reason = None
        self.deletion_type = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_snapshot_dict(self) -> dict:
        """Serialize every column to JSON-safe values (the pre-delete snapshot)."""
        return {column.name: _json_safe(getattr(self, column.name)) for column in self.__table__.columns}


class UserDB(Base):
    """Database model for User."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)
    role = Column(String, nullable=False, default=UserRole.RECRUITER.value)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from recruitguard.models.user import User
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            role=value_to_enum(self.role, UserRole, UserRole.RECRUITER),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, user):
        """Create database model from Pydantic model."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=enum_to_value(user.role),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class JobDB(SoftDeleteMixin, Base):
    """Database model for a job posting."""

    __tablename__ = "jobs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    company = Column(String, nullable=True)
    status = Column(String, nullable=False, default="open")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class CandidateDB(SoftDeleteMixin, Base):
    """Database model for a candidate in a job pipeline (or the talent pool when job_id is null)."""

    __tablename__ = "candidates"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    job_id = Column(String, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    linkedin_url = Column(String, nullable=True)
    resume_url = Column(String, nullable=True)
    stage = Column(String, nullable=False, default="applied")
    erased_at = Column(DateTime, nullable=True)  # personal data anonymized

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    PERSONAL_DATA_COLUMNS = ("full_name", "email", "phone", "linkedin_url", "resume_url")

    @property
    def is_erased(self) -> bool:
        return self.erased_at is not None

    def anonymize(self, actor_id: str, reason: str, at: datetime) -> list:
        """Overwrite personal data in place and mark the row deleted by erasure.

        The row itself is kept so pipeline statistics stay intact. Returns the
        names of the columns that held personal data.
        """
        erased = [name for name in self.PERSONAL_DATA_COLUMNS if getattr(self, name) is not None]
        self.full_name = ERASED_NAME
        self.email = f"erased_{self.id[:8]}@{ERASED_EMAIL_DOMAIN}"
        self.phone = None
        self.linkedin_url = None
        self.resume_url = None
        self.erased_at = at
        self.deleted_at = self.deleted_at or at
        self.deleted_by = actor_id
        self.deleted_reason = f"Personal data erasure: {reason}"
        self.deletion_type = DeletionType.ERASURE.value
        return erased


class FeedbackDB(SoftDeleteMixin, Base):
    """Database model for interviewer feedback on a candidate."""

    __tablename__ = "feedbacks"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    candidate_id = Column(String, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(String, nullable=True)
    rating = Column(Integer, nullable=True)
    content = Column(String, nullable=False, default="")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class ShareLinkDB(Base):
    """Public share link (or client view link) to a job."""

    __tablename__ = "share_links"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    job_id = Column(String, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    link_type = Column(String, nullable=False, default="share")  # "share" | "client_view"
    token = Column(String, nullable=False, unique=True, default=lambda: uuid.uuid4().hex)
    active = Column(Boolean, nullable=False, default=True)
    deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


RESOURCE_MODELS = {
    ResourceType.CANDIDATE.value: CandidateDB,
    ResourceType.JOB.value: JobDB,
    ResourceType.FEEDBACK.value: FeedbackDB,
}


class AuditEventDB(Base):
    """Append-only, hash-chained audit event row. Never updated or deleted."""

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_resource", "resource_type", "resource_id"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Dense chain position; the unique constraint serializes concurrent appends.
    sequence = Column(Integer, nullable=False, unique=True)
    timestamp = Column(DateTime, nullable=False, index=True)

    action = Column(String, nullable=False, index=True)
    actor = Column(JSON, nullable=False)
    resource_type = Column(String, nullable=False)
    resource_id = Column(String, nullable=True)
    resource = Column(JSON, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    client = Column(JSON, nullable=True)
    correlation_id = Column(String, nullable=False, index=True)

    prev_hash = Column(String, nullable=False)
    event_hash = Column(String, nullable=False, unique=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from recruitguard.models.audit_event import AuditEvent, AuditClient, AuditResource
        return AuditEvent(
            id=self.id,
            sequence=self.sequence,
            timestamp=self.timestamp,
            action=self.action,
            actor=self.actor,
            resource=AuditResource(**self.resource),
            payload=self.payload or {},
            client=AuditClient(**self.client) if self.client else None,
            correlation_id=self.correlation_id,
            prev_hash=self.prev_hash,
            event_hash=self.event_hash,
        )


class SnapshotDB(Base):
    """Pre-delete snapshot of a resource."""

    __tablename__ = "pre_delete_snapshots"
    __table_args__ = (
        Index("ix_pre_delete_snapshots_resource", "resource_type", "resource_id"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    resource_type = Column(String, nullable=False)
    resource_id = Column(String, nullable=False)
    snapshot_data = Column(JSON, nullable=False)
    deletion_type = Column(String, nullable=False)
    correlation_id = Column(String, nullable=False, index=True)
    deleted_by = Column(String, nullable=False)
    captured_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from recruitguard.models.snapshot import Snapshot
        return Snapshot(
            id=self.id,
            resource_type=ResourceType(self.resource_type),
            resource_id=self.resource_id,
            snapshot_data=self.snapshot_data or {},
            deletion_type=DeletionType(self.deletion_type),
            correlation_id=self.correlation_id,
            deleted_by=self.deleted_by,
            captured_at=self.captured_at,
        )


class DeletionApprovalDB(Base):
    """Database model for DeletionApproval."""

    __tablename__ = "deletion_approvals"
    __table_args__ = (
        # At most one pending approval per resource, enforced by the store.
        Index(
            "uq_deletion_approvals_pending",
            "resource_type",
            "resource_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    resource_type = Column(String, nullable=False)
    resource_id = Column(String, nullable=False, index=True)
    requested_by = Column(String, nullable=False)
    deletion_reason = Column(String, nullable=False)
    risk_level = Column(String, nullable=False)
    requires_mfa = Column(Boolean, nullable=False, default=False)
    status = Column(String, nullable=False, default=ApprovalStatus.PENDING.value, index=True)
    correlation_id = Column(String, nullable=False, index=True)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    requested_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    decided_by = Column(String, nullable=True)
    decided_at = Column(DateTime, nullable=True)
    rejection_reason = Column(String, nullable=True)
    mfa_verified = Column(Boolean, nullable=False, default=False)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from recruitguard.models.approval import DeletionApproval
        return DeletionApproval(
            id=self.id,
            resource_type=ResourceType(self.resource_type),
            resource_id=self.resource_id,
            requested_by=self.requested_by,
            deletion_reason=self.deletion_reason,
            risk_level=value_to_enum(self.risk_level, RiskLevel, RiskLevel.MEDIUM),
            requires_mfa=self.requires_mfa,
            status=value_to_enum(self.status, ApprovalStatus, ApprovalStatus.PENDING),
            correlation_id=self.correlation_id,
            metadata=self.metadata_ or {},
            requested_at=self.requested_at,
            decided_by=self.decided_by,
            decided_at=self.decided_at,
            rejection_reason=self.rejection_reason,
            mfa_verified=self.mfa_verified,
        )
