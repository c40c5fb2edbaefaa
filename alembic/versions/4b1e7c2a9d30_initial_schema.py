"""initial schema

Revision ID: 4b1e7c2a9d30
Revises:
Create Date: 2026-10-18 09:12:05.412877

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4b1e7c2a9d30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the experiments, experiment_events and users tables."""
    op.create_table(
        "experiments",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("researcher_id", sa.Text, nullable=False),
        sa.Column("title", sa.Text, nullable=False, server_default=""),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("status", sa.Text, nullable=False, server_default="draft"),
        sa.Column("location", sa.Text, nullable=False, server_default=""),
        sa.Column("duration", sa.Integer, nullable=False, server_default="60"),
        sa.Column("compensation", sa.Text, nullable=False, server_default=""),
        sa.Column("requirements_json", sa.Text, nullable=False, server_default="[]"),
        sa.Column("max_participants", sa.Integer, nullable=False, server_default="1"),
        sa.Column("sessions_json", sa.Text, nullable=False, server_default="[]"),
        sa.Column("irb_document_json", sa.Text, nullable=True),
        sa.Column("reviewed_by", sa.Text, nullable=True),
        sa.Column("review_notes", sa.Text, nullable=False, server_default=""),
        sa.Column("reviewed_at", sa.Text, nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
        sa.CheckConstraint(
            "status IN ('draft', 'pending_review', 'approved', 'rejected', "
            "'open', 'in_progress', 'completed', 'cancelled')",
            name="ck_experiments_status",
        ),
        sa.CheckConstraint("max_participants >= 1", name="ck_experiments_max_participants"),
    )
    op.create_index("idx_experiments_status", "experiments", ["status"])
    op.create_index("idx_experiments_researcher", "experiments", ["researcher_id"])

    op.create_table(
        "experiment_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("experiment_id", sa.Text, nullable=False),
        sa.Column("event", sa.Text, nullable=False),
        sa.Column("message", sa.Text, nullable=False, server_default=""),
        sa.Column("actor_id", sa.Text, nullable=False, server_default=""),
        sa.Column("worker_id", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.Text, nullable=False),
    )
    op.create_index(
        "idx_experiment_events_experiment", "experiment_events", ["experiment_id"]
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("email", sa.Text, nullable=False, unique=True),
        sa.Column("first_name", sa.Text, nullable=False, server_default=""),
        sa.Column("last_name", sa.Text, nullable=False, server_default=""),
        sa.Column("role", sa.Text, nullable=False),
        sa.Column("institution", sa.Text, nullable=True),
        sa.Column("department", sa.Text, nullable=True),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.CheckConstraint(
            "role IN ('researcher', 'subject', 'admin')",
            name="ck_users_role",
        ),
    )


def downgrade() -> None:
    """Drop all StudySlot tables."""
    op.drop_table("users")
    op.drop_index("idx_experiment_events_experiment", table_name="experiment_events")
    op.drop_table("experiment_events")
    op.drop_index("idx_experiments_researcher", table_name="experiments")
    op.drop_index("idx_experiments_status", table_name="experiments")
    op.drop_table("experiments")
