"""draft_published_version

Record the draft's own version at publish time so recovery and save status
can tell a published draft from one with newer edits.

Revision ID: b2e4f6a8c013
Revises: a1d3e5f7b901
Create Date: 2026-10-19 16:40:02.551930
"""

from alembic import op
import sqlalchemy as sa


revision = "b2e4f6a8c013"
down_revision = "a1d3e5f7b901"
branch_labels = None
depends_on = None


def _table_names(bind) -> set[str]:
    insp = sa.inspect(bind)
    return set(insp.get_table_names())


def _columns(bind, table_name: str) -> set[str]:
    insp = sa.inspect(bind)
    return {c["name"] for c in insp.get_columns(table_name)}


def upgrade():
    bind = op.get_bind()
    if "deal_room_drafts" not in _table_names(bind):
        return

    cols = _columns(bind, "deal_room_drafts")
    if "published_draft_version" in cols:
        return
    with op.batch_alter_table("deal_room_drafts") as batch_op:
        batch_op.add_column(sa.Column(
            "published_draft_version",
            sa.Integer(),
            nullable=True,
            comment="Draft version at the moment it last published or was reconciled",
        ))


def downgrade():
    bind = op.get_bind()
    if "deal_room_drafts" not in _table_names(bind):
        return

    if "published_draft_version" not in _columns(bind, "deal_room_drafts"):
        return
    with op.batch_alter_table("deal_room_drafts") as batch_op:
        batch_op.drop_column("published_draft_version")
