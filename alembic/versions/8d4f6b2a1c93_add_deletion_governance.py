"""Add soft-delete markers, audit_events, pre_delete_snapshots and deletion_approvals

Revision ID: 8d4f6b2a1c93
Revises: 5a1e3c9d2b70
Create Date: 2026-09-16

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8d4f6b2a1c93"
down_revision: Union[str, Sequence[str], None] = "5a1e3c9d2b70"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SOFT_DELETE_TABLES = ("candidates", "jobs", "feedbacks")
PENDING_ONLY = sa.text("status = 'pending'")


def upgrade() -> None:
    """Upgrade schema."""
    for table_name in SOFT_DELETE_TABLES:
        op.add_column(table_name, sa.Column("deleted_at", sa.DateTime(), nullable=True))
        op.add_column(table_name, sa.Column("deleted_by", sa.String(), nullable=True))
        op.add_column(table_name, sa.Column("deleted_reason", sa.String(), nullable=True))
        op.add_column(table_name, sa.Column("deletion_type", sa.String(), nullable=True))
        op.create_index(op.f(f"ix_{table_name}_deleted_at"), table_name, ["deleted_at"], unique=False)

    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sequence", sa.Integer(), nullable=False, unique=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("actor", sa.JSON(), nullable=False),
        sa.Column("resource_type", sa.String(), nullable=False),
        sa.Column("resource_id", sa.String(), nullable=True),
        sa.Column("resource", sa.JSON(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("client", sa.JSON(), nullable=True),
        sa.Column("correlation_id", sa.String(), nullable=False),
        sa.Column("prev_hash", sa.String(), nullable=False),
        sa.Column("event_hash", sa.String(), nullable=False, unique=True),
    )
    op.create_index(op.f("ix_audit_events_timestamp"), "audit_events", ["timestamp"], unique=False)
    op.create_index(op.f("ix_audit_events_action"), "audit_events", ["action"], unique=False)
    op.create_index(op.f("ix_audit_events_correlation_id"), "audit_events", ["correlation_id"], unique=False)
    op.create_index("ix_audit_events_resource", "audit_events", ["resource_type", "resource_id"], unique=False)

    op.create_table(
        "pre_delete_snapshots",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("resource_type", sa.String(), nullable=False),
        sa.Column("resource_id", sa.String(), nullable=False),
        sa.Column("snapshot_data", sa.JSON(), nullable=False),
        sa.Column("deletion_type", sa.String(), nullable=False),
        sa.Column("correlation_id", sa.String(), nullable=False),
        sa.Column("deleted_by", sa.String(), nullable=False),
        sa.Column("captured_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        op.f("ix_pre_delete_snapshots_correlation_id"), "pre_delete_snapshots", ["correlation_id"], unique=False
    )
    op.create_index(
        "ix_pre_delete_snapshots_resource", "pre_delete_snapshots", ["resource_type", "resource_id"], unique=False
    )

    op.create_table(
        "deletion_approvals",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("resource_type", sa.String(), nullable=False),
        sa.Column("resource_id", sa.String(), nullable=False),
        sa.Column("requested_by", sa.String(), nullable=False),
        sa.Column("deletion_reason", sa.String(), nullable=False),
        sa.Column("risk_level", sa.String(), nullable=False),
        sa.Column("requires_mfa", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("correlation_id", sa.String(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("requested_at", sa.DateTime(), nullable=False),
        sa.Column("decided_by", sa.String(), nullable=True),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        sa.Column("mfa_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index(op.f("ix_deletion_approvals_resource_id"), "deletion_approvals", ["resource_id"], unique=False)
    op.create_index(op.f("ix_deletion_approvals_status"), "deletion_approvals", ["status"], unique=False)
    op.create_index(
        op.f("ix_deletion_approvals_correlation_id"), "deletion_approvals", ["correlation_id"], unique=False
    )
    op.create_index(
        "uq_deletion_approvals_pending",
        "deletion_approvals",
        ["resource_type", "resource_id"],
        unique=True,
        sqlite_where=PENDING_ONLY,
        postgresql_where=PENDING_ONLY,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("uq_deletion_approvals_pending", table_name="deletion_approvals")
    op.drop_index(op.f("ix_deletion_approvals_correlation_id"), table_name="deletion_approvals")
    op.drop_index(op.f("ix_deletion_approvals_status"), table_name="deletion_approvals")
    op.drop_index(op.f("ix_deletion_approvals_resource_id"), table_name="deletion_approvals")
    op.drop_table("deletion_approvals")

    op.drop_index("ix_pre_delete_snapshots_resource", table_name="pre_delete_snapshots")
    op.drop_index(op.f("ix_pre_delete_snapshots_correlation_id"), table_name="pre_delete_snapshots")
    op.drop_table("pre_delete_snapshots")

    op.drop_index("ix_audit_events_resource", table_name="audit_events")
    op.drop_index(op.f("ix_audit_events_correlation_id"), table_name="audit_events")
    op.drop_index(op.f("ix_audit_events_action"), table_name="audit_events")
    op.drop_index(op.f("ix_audit_events_timestamp"), table_name="audit_events")
    op.drop_table("audit_events")

    for table_name in SOFT_DELETE_TABLES:
        op.drop_index(op.f(f"ix_{table_name}_deleted_at"), table_name=table_name)
        op.drop_column(table_name, "deletion_type")
        op.drop_column(table_name, "deleted_reason")
        op.drop_column(table_name, "deleted_by")
        op.drop_column(table_name, "deleted_at")
