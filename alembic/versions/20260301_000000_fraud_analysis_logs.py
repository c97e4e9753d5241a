"""Add fraud analysis log table

Revision ID: 20260301_000000
Revises: 20260115_000000
Create Date: 2026-03-01 00:00:00.000000

Stores the outcome of on-demand message analyses. The analyzed text itself
is not kept, only its SHA-256 hash.

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20260301_000000"
down_revision: Union[str, None] = "20260115_000000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "fraud_analysis_logs",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("sender_id", sa.String(36), nullable=False),
        sa.Column("conversation_id", sa.String(36), nullable=False),
        sa.Column("message_content_hash", sa.String(64), nullable=False),
        sa.Column("risk_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("risk_level", sa.String(16), nullable=False, server_default="low"),
        sa.Column("flags", JSONB(), nullable=False, server_default="[]"),
        sa.Column("patterns", JSONB(), nullable=False, server_default="[]"),
        sa.Column("confidence", sa.Float(), nullable=False, server_default="0"),
        sa.Column("should_block", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("analyzed_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_fraud_analysis_logs_sender_id", "sender_id"),
        sa.Index("ix_fraud_analysis_logs_conversation_id", "conversation_id"),
        sa.Index("ix_fraud_analysis_logs_analyzed_at", "analyzed_at"),
    )


def downgrade() -> None:
    op.drop_table("fraud_analysis_logs")
