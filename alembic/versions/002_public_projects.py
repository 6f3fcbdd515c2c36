"""Public read access for shared projects.

Anyone may read a project marked is_public, including system_conn() with an
empty app.user_id. Writes stay owner-only.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade():
    op.execute("""
        CREATE POLICY projects_select_public
        ON projects
        FOR SELECT
        USING (is_public);
    """)

    op.execute("""
        CREATE INDEX idx_projects_public_created ON projects(category, created_at DESC)
        WHERE is_public;
    """)


def downgrade():
    op.execute("DROP INDEX IF EXISTS idx_projects_public_created")
    op.execute("DROP POLICY IF EXISTS projects_select_public ON projects")
