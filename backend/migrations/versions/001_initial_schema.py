"""Initial schema: 5 tables matching db.py models.

Revision ID: 001
Revises: (none)
Create Date: 2026-10-17
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    # --- users (id mirrors the auth provider's subject) ---
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("is_admin", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _created_at(),
        _updated_at(),
    )

    # --- room_images ---
    op.create_table(
        "room_images",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column(
            "uploaded_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_room_images_user", "room_images", ["user_id", "uploaded_at"])

    # --- furniture_items ---
    op.create_table(
        "furniture_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("dimensions", sa.String(255), server_default="", nullable=False),
        sa.Column("material", sa.String(255), server_default="", nullable=False),
        sa.Column("tags", JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("image_urls", JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("stock_status", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("category", sa.String(100), server_default="", nullable=False),
        sa.Column("purchase_link", sa.Text(), server_default="", nullable=False),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("price >= 0", name="ck_furniture_items_price_non_negative"),
    )
    op.create_index("idx_furniture_items_category", "furniture_items", ["category"])

    # --- user_sessions (design sessions) ---
    op.create_table(
        "user_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "uploaded_image_id",
            UUID(as_uuid=True),
            sa.ForeignKey("room_images.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "selected_furniture_ids",
            JSONB(),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column("generated_image_url", sa.Text(), nullable=True),
        sa.Column("preferences", JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _created_at(),
    )
    op.create_index("idx_user_sessions_user", "user_sessions", ["user_id", "created_at"])

    # --- furniture_placement_metadata ---
    op.create_table(
        "furniture_placement_metadata",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "generated_image_id",
            UUID(as_uuid=True),
            sa.ForeignKey("user_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "furniture_id",
            UUID(as_uuid=True),
            sa.ForeignKey("furniture_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("x", sa.Float(), nullable=False),
        sa.Column("y", sa.Float(), nullable=False),
        sa.Column("width", sa.Float(), nullable=False),
        sa.Column("height", sa.Float(), nullable=False),
        _created_at(),
        sa.CheckConstraint("width > 0 AND height > 0", name="ck_placements_positive_size"),
    )
    op.create_index(
        "idx_placements_generated_image",
        "furniture_placement_metadata",
        ["generated_image_id"],
    )


def downgrade() -> None:
    op.drop_table("furniture_placement_metadata")
    op.drop_table("user_sessions")
    op.drop_table("furniture_items")
    op.drop_table("room_images")
    op.drop_table("users")
