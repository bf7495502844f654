"""Add candidate contact columns and erased_at

Revision ID: c7e2a9f41d05
Revises: 8d4f6b2a1c93
Create Date: 2026-10-17

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "c7e2a9f41d05"
down_revision: Union[str, Sequence[str], None] = "8d4f6b2a1c93"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column("candidates", sa.Column("phone", sa.String(), nullable=True))
    op.add_column("candidates", sa.Column("linkedin_url", sa.String(), nullable=True))
    op.add_column("candidates", sa.Column("resume_url", sa.String(), nullable=True))
    op.add_column("candidates", sa.Column("erased_at", sa.DateTime(), nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_column("candidates", "erased_at")
    op.drop_column("candidates", "resume_url")
    op.drop_column("candidates", "linkedin_url")
    op.drop_column("candidates", "phone")
