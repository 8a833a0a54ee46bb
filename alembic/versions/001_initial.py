"""Initial schema: users, accounts, users_accounts, projects

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

account_status = postgresql.ENUM(
    "active", "pending", "disabled", name="account_status_t", create_type=False
)
user_account_status = postgresql.ENUM(
    "active", "invited", "disabled", name="user_account_status_t", create_type=False
)
user_account_role = postgresql.ENUM(
    "admin", "user", name="user_account_role_t", create_type=False
)
project_status = postgresql.ENUM(
    "active", "disabled", name="project_status_t", create_type=False
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in (account_status, user_account_status, user_account_role, project_status):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("email", sa.Text, nullable=False),
        sa.Column("password_salt", sa.Text, nullable=False),
        sa.Column("password_hash", sa.Text, nullable=False),
        sa.Column("password_reset", sa.Text, nullable=True),
        sa.Column(
            "timezone",
            sa.Text,
            nullable=False,
            server_default=sa.text("'America/Anchorage'"),
        ),
        *_timestamps(),
    )
    # R: uniqueness only among live rows; an archived email can be reused
    op.create_index(
        "uq_users_email",
        "users",
        ["email"],
        unique=True,
        postgresql_where=sa.text("archived_at IS NULL"),
    )

    op.create_table(
        "accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("address1", sa.Text, nullable=False, server_default=""),
        sa.Column("address2", sa.Text, nullable=False, server_default=""),
        sa.Column("city", sa.Text, nullable=False, server_default=""),
        sa.Column("region", sa.Text, nullable=False, server_default=""),
        sa.Column("country", sa.Text, nullable=False, server_default=""),
        sa.Column("zipcode", sa.Text, nullable=False, server_default=""),
        sa.Column(
            "status", account_status, nullable=False, server_default=sa.text("'pending'")
        ),
        sa.Column(
            "timezone",
            sa.Text,
            nullable=False,
            server_default=sa.text("'America/Anchorage'"),
        ),
        sa.Column(
            "signup_user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "billing_user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index(
        "uq_accounts_name",
        "accounts",
        ["name"],
        unique=True,
        postgresql_where=sa.text("archived_at IS NULL"),
    )

    op.create_table(
        "users_accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column("roles", postgresql.ARRAY(user_account_role), nullable=False),
        sa.Column(
            "status",
            user_account_status,
            nullable=False,
            server_default=sa.text("'active'"),
        ),
        *_timestamps(),
    )
    op.create_check_constraint(
        "ck_users_accounts_roles_not_empty",
        "users_accounts",
        "cardinality(roles) > 0",
    )
    op.create_index(
        "uq_users_accounts_user_account",
        "users_accounts",
        ["user_id", "account_id"],
        unique=True,
        postgresql_where=sa.text("archived_at IS NULL"),
    )
    # R: the ACL subquery filters on account_id / user_id
    op.create_index("ix_users_accounts_account_id", "users_accounts", ["account_id"])
    op.create_index("ix_users_accounts_user_id", "users_accounts", ["user_id"])

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column(
            "status", project_status, nullable=False, server_default=sa.text("'active'")
        ),
        *_timestamps(),
    )
    op.create_index("ix_projects_account_id", "projects", ["account_id"])


def downgrade() -> None:
    op.drop_index("ix_projects_account_id", "projects")
    op.drop_table("projects")
    op.drop_index("ix_users_accounts_user_id", "users_accounts")
    op.drop_index("ix_users_accounts_account_id", "users_accounts")
    op.drop_index("uq_users_accounts_user_account", "users_accounts")
    op.drop_table("users_accounts")
    op.drop_index("uq_accounts_name", "accounts")
    op.drop_table("accounts")
    op.drop_index("uq_users_email", "users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (project_status, user_account_role, user_account_status, account_status):
        enum_type.drop(bind, checkfirst=True)
