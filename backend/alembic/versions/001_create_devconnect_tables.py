"""Create DevConnect tables and row-level security policies

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  profiles, projects, comments and comment_likes, their indexes and
       check constraints, and the RLS policies the Store relies on.
How:   The caller's id is read from `request.jwt.claim.sub`, which
       Store.scoped() sets per transaction, so the policies work the same
       behind PostgREST and behind this backend.

Policies:
    profiles       read: everyone              update: self
    projects       read: everyone              insert/update/delete: author
    comments       read: everyone              insert/delete: author
                   update: any signed-in user, counters and updated_at only
    comment_likes  read: everyone              insert/delete: the liker

Rollback: downgrade() drops all four tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CALLER_ID = "nullif(current_setting('request.jwt.claim.sub', true), '')::uuid"


def _timestamps():
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # ── Tables ────────────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False, comment="Equals auth.users.id"),
        sa.Column("full_name", sa.String(100), nullable=True),
        sa.Column("username", sa.String(30), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("website", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("github_url", sa.Text(), nullable=True),
        sa.Column("linkedin_url", sa.Text(), nullable=True),
        sa.Column("role", sa.String(20), server_default=sa.text("'user'"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_profiles"),
        sa.UniqueConstraint("username", name="uq_profiles_username"),
    )
    op.create_index("idx_profiles_created_at", "profiles", [sa.text("created_at DESC")])

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("demo_url", sa.Text(), nullable=True),
        sa.Column("github_url", sa.Text(), nullable=True),
        sa.Column("tech_stack", postgresql.ARRAY(sa.String(50)), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_projects"),
        sa.ForeignKeyConstraint(["author_id"], ["profiles.id"], ondelete="CASCADE", name="projects_author_id_fkey"),
    )
    op.create_index("idx_projects_created_at", "projects", [sa.text("created_at DESC")])
    op.create_index("idx_projects_author_id", "projects", ["author_id"])

    op.create_table(
        "comments",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("parent_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("likes_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("replies_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_comments"),
        sa.ForeignKeyConstraint(["author_id"], ["profiles.id"], ondelete="CASCADE", name="comments_author_id_fkey"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE", name="comments_project_id_fkey"),
        sa.ForeignKeyConstraint(["parent_id"], ["comments.id"], ondelete="CASCADE", name="comments_parent_id_fkey"),
        sa.CheckConstraint("likes_count >= 0", name="ck_comments_likes_count_non_negative"),
        sa.CheckConstraint("replies_count >= 0", name="ck_comments_replies_count_non_negative"),
        sa.CheckConstraint("length(content) between 1 and 2000", name="ck_comments_content_length"),
    )
    op.create_index("idx_comments_project_created", "comments", ["project_id", sa.text("created_at DESC")])
    op.create_index("idx_comments_parent_id", "comments", ["parent_id"])

    op.create_table(
        "comment_likes",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("comment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_comment_likes"),
        sa.ForeignKeyConstraint(["comment_id"], ["comments.id"], ondelete="CASCADE", name="comment_likes_comment_id_fkey"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE", name="comment_likes_user_id_fkey"),
        sa.UniqueConstraint("comment_id", "user_id", name="uq_comment_likes_comment_user"),
    )

    # ── Grants ────────────────────────────────────────────────────────────
    op.execute("GRANT SELECT ON profiles, projects, comments, comment_likes TO anon, authenticated")
    op.execute("GRANT UPDATE ON profiles TO authenticated")
    op.execute("GRANT INSERT, UPDATE, DELETE ON projects TO authenticated")
    op.execute("GRANT INSERT, DELETE ON comments, comment_likes TO authenticated")
    op.execute("GRANT UPDATE (likes_count, replies_count, updated_at) ON comments TO authenticated")

    # ── Row-Level Security ────────────────────────────────────────────────
    for table in ("profiles", "projects", "comments", "comment_likes"):
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(f"CREATE POLICY {table}_public_read ON {table} FOR SELECT USING (true)")

    op.execute(
        f"CREATE POLICY profiles_self_update ON profiles FOR UPDATE TO authenticated "
        f"USING (id = {CALLER_ID}) WITH CHECK (id = {CALLER_ID})"
    )
    op.execute(
        f"CREATE POLICY projects_owner_insert ON projects FOR INSERT TO authenticated "
        f"WITH CHECK (author_id = {CALLER_ID})"
    )
    op.execute(
        f"CREATE POLICY projects_owner_write ON projects FOR UPDATE TO authenticated "
        f"USING (author_id = {CALLER_ID}) WITH CHECK (author_id = {CALLER_ID})"
    )
    op.execute(
        f"CREATE POLICY projects_owner_delete ON projects FOR DELETE TO authenticated "
        f"USING (author_id = {CALLER_ID})"
    )
    op.execute(
        f"CREATE POLICY comments_author_insert ON comments FOR INSERT TO authenticated "
        f"WITH CHECK (author_id = {CALLER_ID})"
    )
    op.execute(
        "CREATE POLICY comments_counter_update ON comments FOR UPDATE TO authenticated "
        "USING (true) WITH CHECK (true)"
    )
    op.execute(
        f"CREATE POLICY comments_author_delete ON comments FOR DELETE TO authenticated "
        f"USING (author_id = {CALLER_ID})"
    )
    op.execute(
        f"CREATE POLICY comment_likes_self_insert ON comment_likes FOR INSERT TO authenticated "
        f"WITH CHECK (user_id = {CALLER_ID})"
    )
    op.execute(
        f"CREATE POLICY comment_likes_self_delete ON comment_likes FOR DELETE TO authenticated "
        f"USING (user_id = {CALLER_ID})"
    )

    # ── Profile row for every new auth user (hosted auth schema only) ─────
    op.execute(
        """
        DO $$
        BEGIN
            IF EXISTS (SELECT 1 FROM information_schema.schemata WHERE schema_name = 'auth') THEN
                EXECUTE $fn$
                    CREATE OR REPLACE FUNCTION public.handle_new_user()
                    RETURNS trigger
                    LANGUAGE plpgsql
                    SECURITY DEFINER SET search_path = public
                    AS $body$
                    BEGIN
                        INSERT INTO public.profiles (id, email, full_name, username)
                        VALUES (
                            NEW.id,
                            NEW.email,
                            NEW.raw_user_meta_data ->> 'full_name',
                            NEW.raw_user_meta_data ->> 'username'
                        );
                        RETURN NEW;
                    END;
                    $body$
                $fn$;
                EXECUTE 'DROP TRIGGER IF EXISTS on_auth_user_created ON auth.users';
                EXECUTE 'CREATE TRIGGER on_auth_user_created AFTER INSERT ON auth.users '
                        'FOR EACH ROW EXECUTE FUNCTION public.handle_new_user()';
            END IF;
        END
        $$;
        """
    )


def downgrade() -> None:
    op.execute(
        """
        DO $$
        BEGIN
            IF EXISTS (SELECT 1 FROM information_schema.schemata WHERE schema_name = 'auth') THEN
                EXECUTE 'DROP TRIGGER IF EXISTS on_auth_user_created ON auth.users';
            END IF;
        END
        $$;
        """
    )
    op.execute("DROP FUNCTION IF EXISTS public.handle_new_user()")
    op.drop_table("comment_likes")
    op.drop_index("idx_comments_parent_id", table_name="comments")
    op.drop_index("idx_comments_project_created", table_name="comments")
    op.drop_table("comments")
    op.drop_index("idx_projects_author_id", table_name="projects")
    op.drop_index("idx_projects_created_at", table_name="projects")
    op.drop_table("projects")
    op.drop_index("idx_profiles_created_at", table_name="profiles")
    op.drop_table("profiles")
