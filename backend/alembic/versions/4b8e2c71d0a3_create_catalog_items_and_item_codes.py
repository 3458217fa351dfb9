"""create catalog items, item codes and audit logs

Revision ID: 4b8e2c71d0a3
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "4b8e2c71d0a3"
down_revision = None
branch_labels = None
depends_on = None


catalog_item_status = postgresql.ENUM("DRAFT", "PUBLISHED", "ARCHIVED", name="catalog_item_status", create_type=False)


def upgrade() -> None:
    catalog_item_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "catalog_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("code", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", catalog_item_status, nullable=False, server_default="DRAFT"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cover", sa.Text(), nullable=False, server_default=""),
        sa.Column("preview_video", sa.Text(), nullable=False, server_default=""),
        sa.Column("demo_video", sa.Text(), nullable=False, server_default=""),
        sa.Column("gallery", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("attachments", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(op.f("ix_catalog_items_code"), "catalog_items", ["code"])
    op.create_index(op.f("ix_catalog_items_status"), "catalog_items", ["status"])

    op.create_table(
        "item_codes",
        sa.Column("code", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("assigned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("item_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(op.f("ix_item_codes_assigned"), "item_codes", ["assigned"])
    op.create_index(op.f("ix_item_codes_item_id"), "item_codes", ["item_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("actor", sa.String(length=200), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
    )
    op.create_index(op.f("ix_audit_logs_entity_id"), "audit_logs", ["entity_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_audit_logs_entity_id"), table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index(op.f("ix_item_codes_item_id"), table_name="item_codes")
    op.drop_index(op.f("ix_item_codes_assigned"), table_name="item_codes")
    op.drop_table("item_codes")

    op.drop_index(op.f("ix_catalog_items_status"), table_name="catalog_items")
    op.drop_index(op.f("ix_catalog_items_code"), table_name="catalog_items")
    op.drop_table("catalog_items")

    catalog_item_status.drop(op.get_bind(), checkfirst=True)
