"""buffer callbacks that arrive before their attempt is matched

Revision ID: 0002_unmatched_callbacks
Revises: 0001_initial
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0002_unmatched_callbacks"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "unmatched_callbacks",
        sa.Column("callback_id", sa.String(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("correlation_id", sa.String(), nullable=False),
        sa.Column(
            "payload",
            sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql"),
            nullable=False,
        ),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("callback_id"),
    )
    op.create_index("ix_unmatched_callbacks_correlation_id", "unmatched_callbacks", ["correlation_id"])


def downgrade() -> None:
    op.drop_index("ix_unmatched_callbacks_correlation_id", table_name="unmatched_callbacks")
    op.drop_table("unmatched_callbacks")
