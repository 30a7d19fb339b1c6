"""Create the stream bookkeeping table.

Revision ID: 0001_stream_state
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from alembic import op

from typedupe.adapters.sqlalchemy.mappings import UTCDateTime

if TYPE_CHECKING:
    from collections.abc import Sequence

revision: str = "0001_stream_state"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "typedupe_stream_state",
        sa.Column("stream_name", sa.String(length=255), nullable=False),
        sa.Column("last_started_at", UTCDateTime(), nullable=True),
        sa.Column("last_completed_at", UTCDateTime(), nullable=True),
        sa.Column("runs_completed", sa.Integer(), nullable=False),
        sa.Column("last_loaded_count", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("stream_name", name=op.f("pk_typedupe_stream_state")),
    )


def downgrade() -> None:
    op.drop_table("typedupe_stream_state")
