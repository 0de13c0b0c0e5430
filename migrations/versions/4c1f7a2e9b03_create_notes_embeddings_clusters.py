"""create notes, embeddings and clusters

Revision ID: 4c1f7a2e9b03
Revises:
Create Date: 2026-10-18 10:12:44.208113

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "4c1f7a2e9b03"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

note_state = postgresql.ENUM(
    "inbox", "active", "snoozed", "archived", name="note_state", create_type=False
)
note_color = postgresql.ENUM(
    "yellow", "pink", "blue", "green", name="note_color", create_type=False
)
note_source = postgresql.ENUM("text", "voice", name="note_source", create_type=False)


def upgrade() -> None:
    """Create the note, embedding and cluster tables."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    bind = op.get_bind()
    for enum_type in (note_state, note_color, note_source):
        enum_type.create(bind, checkfirst=True)

    # -- notes table --
    op.create_table(
        "notes",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("color", note_color, nullable=False),
        sa.Column("source", note_source, nullable=False),
        sa.Column("state", note_state, nullable=False),
        sa.Column("raw_transcript", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("snoozed_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_surfaced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("linked_to", sa.String(36), nullable=True),
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
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notes_state", "notes", ["state"])

    # -- embeddings table (one vector per note) --
    op.create_table(
        "embeddings",
        sa.Column("note_id", sa.String(36), nullable=False),
        sa.Column("vector", Vector(384), nullable=False),
        sa.Column("model", sa.String(200), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("note_id"),
        sa.ForeignKeyConstraint(["note_id"], ["notes.id"], ondelete="CASCADE"),
    )

    # -- clusters table (replaced wholesale on every run) --
    op.create_table(
        "clusters",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "note_ids",
            JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
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
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Drop the note, embedding and cluster tables."""
    op.drop_table("clusters")
    op.drop_table("embeddings")
    op.drop_index("ix_notes_state", table_name="notes")
    op.drop_table("notes")

    bind = op.get_bind()
    for enum_type in (note_source, note_color, note_state):
        enum_type.drop(bind, checkfirst=True)
