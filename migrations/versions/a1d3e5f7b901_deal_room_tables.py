"""deal_room_tables

Creates the deal room tables:
  - deal_rooms           : published content, one row per project
  - deal_room_drafts     : autosaved per-session drafts with expiry
  - deal_room_versions   : capped history of published snapshots
  - deal_room_conflicts  : divergences detected when publishing a draft

Tables created conditionally (IF NOT EXISTS semantics) so the revision can
run against a database that already received them via db.create_all().

Revision ID: a1d3e5f7b901
Revises:
Create Date: 2026-10-19 09:12:44.318207
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = 'a1d3e5f7b901'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── DealRoom ──────────────────────────────────────────────────────────
    if "deal_rooms" not in existing:
        op.create_table(
            "deal_rooms",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=100), nullable=False),
            sa.Column(
                "showcase_photo", sa.JSON(), nullable=True,
                comment="Upload metadata only; bytes live under UPLOAD_FOLDER.",
            ),
            sa.Column("investment_blurb", sa.String(length=500), nullable=False, server_default=""),
            sa.Column("investment_summary", sa.Text(), nullable=False, server_default=""),
            sa.Column("key_info", sa.JSON(), nullable=False),
            sa.Column("external_links", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_deal_rooms_project_id", "deal_rooms", ["project_id"], unique=True)

    # ── DealRoomDraft ─────────────────────────────────────────────────────
    if "deal_room_drafts" not in existing:
        op.create_table(
            "deal_room_drafts",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=100), nullable=False),
            sa.Column("session_id", sa.String(length=100), nullable=False),
            sa.Column("user_id", sa.String(length=100), nullable=True),
            sa.Column("draft_data", sa.JSON(), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("last_saved_version", sa.Integer(), nullable=True),
            sa.Column("is_auto_save", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "session_id", name="uq_drd_project_session"),
        )
        op.create_index("ix_deal_room_drafts_project_id", "deal_room_drafts", ["project_id"])
        op.create_index("idx_drd_expires_at", "deal_room_drafts", ["expires_at"])

    # ── DealRoomVersion ───────────────────────────────────────────────────
    if "deal_room_versions" not in existing:
        op.create_table(
            "deal_room_versions",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=100), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False),
            sa.Column("data", sa.JSON(), nullable=False),
            sa.Column("change_description", sa.String(length=500), nullable=True),
            sa.Column("created_by", sa.String(length=100), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "version", name="uq_drv_project_version"),
        )
        op.create_index("ix_deal_room_versions_project_id", "deal_room_versions", ["project_id"])

    # ── DealRoomConflict ──────────────────────────────────────────────────
    if "deal_room_conflicts" not in existing:
        op.create_table(
            "deal_room_conflicts",
            sa.Column("conflict_id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=100), nullable=False),
            sa.Column("session_id", sa.String(length=100), nullable=False),
            sa.Column(
                "conflict_type", sa.String(length=30), nullable=False,
                server_default="concurrent_edit",
                comment="concurrent_edit | version_mismatch | data_corruption",
            ),
            sa.Column("local_version", sa.Integer(), nullable=False),
            sa.Column("server_version", sa.Integer(), nullable=False),
            sa.Column("local_data", sa.JSON(), nullable=False),
            sa.Column("server_data", sa.JSON(), nullable=False),
            sa.Column("conflict_fields", sa.JSON(), nullable=False),
            sa.Column(
                "resolution", sa.String(length=20), nullable=True,
                comment="use_local | use_server | merge | manual",
            ),
            sa.Column("resolved_data", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("conflict_id"),
        )
        op.create_index("ix_deal_room_conflicts_project_id", "deal_room_conflicts", ["project_id"])
        op.create_index("idx_drc_project_open", "deal_room_conflicts", ["project_id", "resolved_at"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    if "deal_room_conflicts" in existing:
        op.drop_index("idx_drc_project_open", table_name="deal_room_conflicts")
        op.drop_index("ix_deal_room_conflicts_project_id", table_name="deal_room_conflicts")
        op.drop_table("deal_room_conflicts")

    if "deal_room_versions" in existing:
        op.drop_index("ix_deal_room_versions_project_id", table_name="deal_room_versions")
        op.drop_table("deal_room_versions")

    if "deal_room_drafts" in existing:
        op.drop_index("idx_drd_expires_at", table_name="deal_room_drafts")
        op.drop_index("ix_deal_room_drafts_project_id", table_name="deal_room_drafts")
        op.drop_table("deal_room_drafts")

    if "deal_rooms" in existing:
        op.drop_index("ix_deal_rooms_project_id", table_name="deal_rooms")
        op.drop_table("deal_rooms")
