"""Create users, groups, memberships, saved searches and token tables.

Revision ID: 20261018000000
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20261018000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("login_name", sa.String(length=255), nullable=False),
        sa.Column("realname", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("nickname", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("cryptpassword", sa.String(length=255), nullable=False, server_default="*"),
        sa.Column(
            "password_change_required", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("disabledtext", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("iam_username", sa.String(length=255), nullable=True),
        sa.Column("mfa", sa.String(length=32), nullable=True),
        sa.Column("last_seen_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_activity_ts", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "creation_ts",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("iam_username"),
    )
    op.create_index(op.f("ix_users_login_name"), "users", ["login_name"], unique=True)
    op.create_index(op.f("ix_users_nickname"), "users", ["nickname"], unique=False)
    # Case-insensitive login lookups.
    op.create_index(
        "ix_users_login_name_lower",
        "users",
        [sa.text("lower(login_name)")],
        unique=True,
    )

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_groups_name"), "groups", ["name"], unique=True)

    op.create_table(
        "user_group_map",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("isbless", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "group_id", "isbless"),
    )

    op.create_table(
        "namedqueries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("userid", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("query", sa.Text(), nullable=False, server_default=""),
        sa.ForeignKeyConstraint(["userid"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_namedqueries_userid"), "namedqueries", ["userid"], unique=False)

    op.create_table(
        "logincookies",
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("userid", sa.Integer(), nullable=False),
        sa.Column(
            "lastused",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["userid"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("token"),
    )
    op.create_index(op.f("ix_logincookies_userid"), "logincookies", ["userid"], unique=False)

    op.create_table(
        "tokens",
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("tokentype", sa.String(length=16), nullable=False, server_default="account"),
        sa.Column("eventdata", sa.String(length=255), nullable=False),
        sa.Column(
            "issuedate",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("token"),
    )


def downgrade() -> None:
    op.drop_table("tokens")
    op.drop_index(op.f("ix_logincookies_userid"), table_name="logincookies")
    op.drop_table("logincookies")
    op.drop_index(op.f("ix_namedqueries_userid"), table_name="namedqueries")
    op.drop_table("namedqueries")
    op.drop_table("user_group_map")
    op.drop_index(op.f("ix_groups_name"), table_name="groups")
    op.drop_table("groups")
    op.drop_index("ix_users_login_name_lower", table_name="users")
    op.drop_index(op.f("ix_users_nickname"), table_name="users")
    op.drop_index(op.f("ix_users_login_name"), table_name="users")
    op.drop_table("users")
