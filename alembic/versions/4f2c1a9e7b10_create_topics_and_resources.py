"""
Create the topics and resources tables.

`resources.url` is the sole uniqueness key. The CHECK constraint keeps
`publication` set if and only if the resource is no longer a draft.

Revision ID: 4f2c1a9e7b10
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op

revision: str = "4f2c1a9e7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
    CREATE TABLE IF NOT EXISTS topics (
        id UUID PRIMARY KEY,
        name TEXT NOT NULL UNIQUE
    );
    """)

    op.execute("""
    CREATE TABLE IF NOT EXISTS resources (
        id UUID PRIMARY KEY,
        title TEXT NOT NULL,
        url TEXT NOT NULL,
        description TEXT,
        topic UUID REFERENCES topics (id),
        source BIGINT NOT NULL,
        accession TIMESTAMPTZ NOT NULL,
        draft BOOLEAN NOT NULL DEFAULT TRUE,
        publication TIMESTAMPTZ,
        CONSTRAINT resources_url_key UNIQUE (url),
        CONSTRAINT resources_publication_matches_draft CHECK (draft = (publication IS NULL))
    );
    """)

    op.execute("""
    CREATE INDEX IF NOT EXISTS idx_resources_draft_accession
        ON resources (draft, accession);
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_resources_draft_accession;")
    op.execute("DROP TABLE IF EXISTS resources;")
    op.execute("DROP TABLE IF EXISTS topics;")
