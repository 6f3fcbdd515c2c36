"""Projects table with RLS policies.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # user_id is the identity provider's opaque subject, not a local FK
    op.execute("""
        CREATE TABLE projects (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id TEXT NOT NULL,
            name TEXT NOT NULL DEFAULT 'Untitled App',
            description TEXT NOT NULL DEFAULT '',
            prompt TEXT NOT NULL DEFAULT '',
            generated_code TEXT NOT NULL DEFAULT '',
            preview_html TEXT NOT NULL DEFAULT '',
            is_public BOOLEAN NOT NULL DEFAULT false,
            allow_remix BOOLEAN NOT NULL DEFAULT true,
            category TEXT NOT NULL DEFAULT 'other',
            original_project_id UUID REFERENCES projects(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("""
        CREATE INDEX idx_projects_user_created ON projects(user_id, created_at DESC);
    """)

    op.execute("ALTER TABLE projects ENABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE projects FORCE ROW LEVEL SECURITY")

    # Empty app.user_id means system_conn(); it sees nothing through these policies
    op.execute("""
        CREATE POLICY projects_select_own
        ON projects
        FOR SELECT
        USING (user_id = current_setting('app.user_id', true));
    """)

    op.execute("""
        CREATE POLICY projects_insert_own
        ON projects
        FOR INSERT
        WITH CHECK (user_id = current_setting('app.user_id', true));
    """)

    op.execute("""
        CREATE POLICY projects_update_own
        ON projects
        FOR UPDATE
        USING (user_id = current_setting('app.user_id', true))
        WITH CHECK (user_id = current_setting('app.user_id', true));
    """)

    op.execute("""
        CREATE POLICY projects_delete_own
        ON projects
        FOR DELETE
        USING (user_id = current_setting('app.user_id', true));
    """)


def downgrade():
    op.execute("DROP TABLE IF EXISTS projects CASCADE")
