"""Initial schema — quotation requests and their files, comments, status history.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _parent_fk() -> sa.Column:
    return sa.Column(
        "quotation_request_id",
        sa.Integer(),
        sa.ForeignKey("quotation_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def upgrade() -> None:
    # ── Aggregate root ─────────────────────────────────────────────────

    op.create_table(
        "quotation_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("request_number", sa.String(50), nullable=False),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_email", sa.String(254), nullable=False, index=True),
        sa.Column("customer_phone", sa.String(20)),
        sa.Column("company_name", sa.String(200)),
        sa.Column("job_title", sa.String(100)),
        sa.Column(
            "customer_id",
            sa.Integer(),
            index=True,
            comment="External customer account id, null for guest submissions",
        ),
        sa.Column("subject", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("requirements", sa.String(500)),
        sa.Column("industry", sa.String(50)),
        sa.Column("project_timeline", sa.String(100)),
        sa.Column("estimated_budget", sa.Numeric(18, 2)),
        sa.Column("preferred_contact_method", sa.String(50)),
        sa.Column("status", sa.String(30), nullable=False, index=True),
        sa.Column("priority", sa.String(20), nullable=False, index=True),
        sa.Column(
            "assigned_to_team_member",
            sa.String(100),
            index=True,
            comment="Free-text label, not a user reference",
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True)),
        sa.Column("quoted_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("request_number", name="uq_quotation_requests_request_number"),
    )
    op.create_index("ix_quotation_requests_created_at", "quotation_requests", ["created_at"])

    # ── Children (cascade with the parent) ─────────────────────────────

    op.create_table(
        "quotation_request_files",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _parent_fk(),
        sa.Column("file_name", sa.String(255), nullable=False, comment="Name as supplied by the client"),
        sa.Column("object_name", sa.String(500), nullable=False, comment="Opaque storage object path"),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("content_type", sa.String(100)),
        sa.Column("upload_service_file_id", sa.String(100)),
        sa.Column("description", sa.String(500)),
        sa.Column("file_category", sa.String(50)),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "quotation_request_comments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _parent_fk(),
        sa.Column("author_name", sa.String(200), nullable=False),
        sa.Column("author_email", sa.String(254)),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("comment_type", sa.String(20), nullable=False),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "quotation_request_status_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _parent_fk(),
        sa.Column("from_status", sa.String(30), nullable=False),
        sa.Column("to_status", sa.String(30), nullable=False),
        sa.Column("changed_by_team_member", sa.String(100)),
        sa.Column("change_reason", sa.String(500)),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("quotation_request_status_history")
    op.drop_table("quotation_request_comments")
    op.drop_table("quotation_request_files")
    op.drop_index("ix_quotation_requests_created_at", table_name="quotation_requests")
    op.drop_table("quotation_requests")
