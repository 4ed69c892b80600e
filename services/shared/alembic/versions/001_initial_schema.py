"""Create users, user_api_quota, languages and api_usage_log tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the account, quota and usage log schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "is_admin",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "account_status",
            sa.String(20),
            nullable=False,
            server_default="active",
            comment="Account status: 'active' or 'suspended'",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "user_api_quota",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("calls_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("calls_limit", sa.Integer(), nullable=False, server_default="20"),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("user_id"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_user_api_quota_user",
            ondelete="CASCADE",
        ),
    )

    op.create_table(
        "languages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(10), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_languages_code"),
    )

    op.create_table(
        "api_usage_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("language_id", sa.Integer(), nullable=True),
        sa.Column("endpoint", sa.String(255), nullable=False),
        sa.Column("method", sa.String(10), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_api_usage_log_user",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["language_id"],
            ["languages.id"],
            name="fk_api_usage_log_language",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_api_usage_log_user_id", "api_usage_log", ["user_id"])
    op.create_index(
        "ix_api_usage_log_method_endpoint",
        "api_usage_log",
        ["method", "endpoint"],
    )


def downgrade() -> None:
    """Drop the schema in reverse dependency order."""
    op.drop_index("ix_api_usage_log_method_endpoint", table_name="api_usage_log")
    op.drop_index("ix_api_usage_log_user_id", table_name="api_usage_log")
    op.drop_table("api_usage_log")
    op.drop_table("languages")
    op.drop_table("user_api_quota")
    op.drop_table("users")
