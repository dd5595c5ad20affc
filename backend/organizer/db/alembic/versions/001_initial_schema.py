"""Initial schema - documents and tag assignments

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- documents (path is unique; reconciliation relies on it to skip known files)
- tagged_resources (tag assignments joined onto documents at read time)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    # documents table
    op.create_table(
        "documents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("description", sa.String(1024), nullable=True),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(255), nullable=False),
        sa.Column("path", sa.String(255), nullable=False),
        sa.Column("created", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("path", name="uq_documents_path"),
    )

    # tagged_resources table
    op.create_table(
        "tagged_resources",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tag_id", sa.String(36), nullable=False),
        sa.Column(
            "resource_id",
            sa.String(36),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    op.create_index("idx_tagged_resources_resource", "tagged_resources", ["resource_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_tagged_resources_resource", table_name="tagged_resources")
    op.drop_table("tagged_resources")
    op.drop_table("documents")
