"""create documents table

Revision ID: 001_create_documents
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "001_create_documents"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One table for every collection: users, watches, transactions, serial_validation
    op.create_table(
        "documents",
        sa.Column("collection", sa.String(64), primary_key=True),
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("data", JSONB, nullable=False, server_default=sa.text("'{}'")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_documents_collection", "documents", ["collection"])

    # At most one active or pending listing per serial number
    op.execute(
        "CREATE UNIQUE INDEX ux_documents_watch_serial "
        "ON documents ((data->>'serial_number')) "
        "WHERE collection = 'watches' AND data->>'status' IN ('active', 'pending')"
    )
    op.execute(
        "CREATE INDEX ix_documents_serial_number "
        "ON documents ((data->>'serial_number')) "
        "WHERE collection IN ('watches', 'serial_validation')"
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_documents_serial_number")
    op.execute("DROP INDEX IF EXISTS ux_documents_watch_serial")
    op.drop_index("ix_documents_collection", table_name="documents")
    op.drop_table("documents")
