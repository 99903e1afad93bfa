"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _document_columns():
    return [
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("json", sa.JSON(), nullable=True),
        sa.Column("author", sa.Uuid(as_uuid=True), nullable=False, index=True),
        sa.Column("schema", sa.Uuid(as_uuid=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("prev", sa.Uuid(as_uuid=True), nullable=True),
        *_timestamps(),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_table("db", *_document_columns())
    op.create_table(
        "db_archive",
        *_document_columns(),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "composites",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("author", sa.Uuid(as_uuid=True), nullable=False, index=True),
        sa.Column("compose_id", sa.Uuid(as_uuid=True), nullable=False, index=True),
        sa.Column("archived", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "composite_relationships",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("source_composite_id", sa.Uuid(as_uuid=True), sa.ForeignKey("composites.id"),
                  nullable=False, index=True),
        sa.Column("target_composite_id", sa.Uuid(as_uuid=True), sa.ForeignKey("composites.id"),
                  nullable=False, index=True),
        sa.Column("relationship_type", sa.String(50), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "patch_requests",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("author", sa.Uuid(as_uuid=True), nullable=False, index=True),
        sa.Column("old_version_id", sa.Uuid(as_uuid=True), nullable=True),
        sa.Column("new_version_id", sa.Uuid(as_uuid=True), nullable=True),
        sa.Column("composite_id", sa.Uuid(as_uuid=True), sa.ForeignKey("composites.id"),
                  nullable=False, index=True),
        sa.Column("status", sa.String(8), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "db_operations",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("patch_request_id", sa.Uuid(as_uuid=True), sa.ForeignKey("patch_requests.id"),
                  nullable=False, index=True),
        sa.Column("operation_type", sa.String(7), nullable=False),
        sa.Column("path", sa.JSON(), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("author", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("composite_id", sa.Uuid(as_uuid=True), nullable=True),
        sa.Column("content_id", sa.Uuid(as_uuid=True), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
    )


def downgrade():
    op.drop_table("db_operations")
    op.drop_table("patch_requests")
    op.drop_table("composite_relationships")
    op.drop_table("composites")
    op.drop_table("db_archive")
    op.drop_table("db")
    op.drop_table("users")
