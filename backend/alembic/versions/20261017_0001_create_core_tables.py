"""create core tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=26), primary_key=True, nullable=False),
        sa.Column("role", sa.String(), server_default="owner", nullable=False),
        sa.Column("email", sa.String(), nullable=True, unique=True),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "albums",
        sa.Column("id", sa.String(length=26), primary_key=True, nullable=False),
        sa.Column("owner_user_id", sa.String(length=26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(), server_default="portfolio", nullable=False),
        sa.Column("is_public", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("order_id", sa.String(), nullable=True),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("model", sa.Text(), nullable=True),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("cover_item_id", sa.String(length=26), nullable=True),
        sa.Column("public_version", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("owner_user_id", "slug", name="uq_albums_owner_slug"),
    )
    op.create_index("ix_albums_owner_user_id", "albums", ["owner_user_id"])

    op.create_table(
        "items",
        sa.Column("id", sa.String(length=26), primary_key=True, nullable=False),
        sa.Column("owner_user_id", sa.String(length=26), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(), server_default="photo", nullable=False),
        sa.Column("image_id", sa.Text(), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("meta", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_items_owner_user_id", "items", ["owner_user_id"])

    op.create_table(
        "album_items",
        sa.Column("album_id", sa.String(length=26), sa.ForeignKey("albums.id", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column("item_id", sa.String(length=26), sa.ForeignKey("items.id", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "tags",
        sa.Column("id", sa.String(length=26), primary_key=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False, unique=True),
        sa.Column("kind", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "tag_refs",
        sa.Column("tag_id", sa.String(length=26), sa.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column("entity_type", sa.String(), primary_key=True, nullable=False),
        sa.Column("entity_id", sa.String(length=26), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_tag_refs_entity_id", "tag_refs", ["entity_id"])

    op.create_table(
        "outbox_events",
        sa.Column("id", sa.String(length=26), primary_key=True, nullable=False),
        sa.Column("aggregate_type", sa.String(), nullable=False),
        sa.Column("aggregate_id", sa.String(length=26), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_outbox_events_aggregate_id", "outbox_events", ["aggregate_id"])
    op.create_index("ix_outbox_events_processed_at", "outbox_events", ["processed_at"])


def downgrade() -> None:
    op.drop_index("ix_outbox_events_processed_at", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_id", table_name="outbox_events")
    op.drop_table("outbox_events")
    op.drop_index("ix_tag_refs_entity_id", table_name="tag_refs")
    op.drop_table("tag_refs")
    op.drop_table("tags")
    op.drop_table("album_items")
    op.drop_index("ix_items_owner_user_id", table_name="items")
    op.drop_table("items")
    op.drop_index("ix_albums_owner_user_id", table_name="albums")
    op.drop_table("albums")
    op.drop_table("users")
