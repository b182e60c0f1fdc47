"""create users, friendships, groups, messages and polls

Revision ID: 20261019_initial_huddle_schema
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_initial_huddle_schema"
down_revision = None
branch_labels = None
depends_on = None

_UUID = postgresql.UUID(as_uuid=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    user_presence = sa.Enum("online", "offline", "away", name="user_presence")
    friend_request_status = sa.Enum("pending", "accepted", "rejected", name="friend_request_status")
    group_member_role = sa.Enum("member", "admin", name="group_member_role")
    message_type = sa.Enum("text", "poll", "system", name="message_type")
    poll_status = sa.Enum("active", "completed", name="poll_status")

    op.create_table(
        "users",
        sa.Column("id", _UUID, primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("display_name", sa.String(length=150)),
        sa.Column("avatar_url", sa.String(length=1024)),
        sa.Column("presence", user_presence, nullable=False, server_default="offline"),
        sa.Column("is_bot", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "friend_requests",
        sa.Column("id", _UUID, primary_key=True, nullable=False),
        sa.Column("sender_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("receiver_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", friend_request_status, nullable=False, server_default="pending"),
        sa.Column("pair_key", sa.String(length=80), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.CheckConstraint("sender_id <> receiver_id", name="ck_friend_request_not_self"),
    )
    op.create_index("ix_friend_requests_sender_id", "friend_requests", ["sender_id"])
    op.create_index("ix_friend_requests_receiver_id", "friend_requests", ["receiver_id"])
    op.create_index("ix_friend_requests_pair_key", "friend_requests", ["pair_key"])
    op.create_index(
        "uq_friend_request_pending_pair",
        "friend_requests",
        ["pair_key"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "friendships",
        sa.Column("id", _UUID, primary_key=True, nullable=False),
        sa.Column("user_a_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_b_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_a_id", "user_b_id", name="uq_friendship_pair"),
        sa.CheckConstraint("user_a_id <> user_b_id", name="ck_friendship_not_self"),
    )
    op.create_index("ix_friendships_user_a_id", "friendships", ["user_a_id"])
    op.create_index("ix_friendships_user_b_id", "friendships", ["user_b_id"])

    op.create_table(
        "groups",
        sa.Column("id", _UUID, primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("admin_id", _UUID, sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_groups_admin_id", "groups", ["admin_id"])

    op.create_table(
        "group_members",
        sa.Column("id", _UUID, primary_key=True, nullable=False),
        sa.Column("group_id", _UUID, sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", group_member_role, nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_member"),
    )
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"])
    op.create_index("ix_group_members_user_id", "group_members", ["user_id"])
    op.create_index(
        "uq_group_single_admin",
        "group_members",
        ["group_id"],
        unique=True,
        postgresql_where=sa.text("role = 'admin'"),
    )

    op.create_table(
        "messages",
        sa.Column("id", _UUID, primary_key=True, nullable=False),
        sa.Column("sender_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("message_type", message_type, nullable=False, server_default="text"),
        sa.Column("group_id", _UUID, sa.ForeignKey("groups.id", ondelete="CASCADE")),
        sa.Column("receiver_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE")),
        *_timestamps(),
        sa.CheckConstraint("(group_id IS NULL) <> (receiver_id IS NULL)", name="ck_message_single_target"),
    )
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_group_id", "messages", ["group_id"])
    op.create_index("ix_messages_receiver_id", "messages", ["receiver_id"])
    op.create_index("ix_messages_group_created", "messages", ["group_id", "created_at"])

    op.create_table(
        "polls",
        sa.Column("id", _UUID, primary_key=True, nullable=False),
        sa.Column("message_id", _UUID, sa.ForeignKey("messages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("group_id", _UUID, sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_by", _UUID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("status", poll_status, nullable=False, server_default="active"),
        sa.Column("results_summary", sa.Text()),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint("message_id", name="uq_polls_message_id"),
    )
    op.create_index("ix_polls_group_id", "polls", ["group_id"])

    op.create_table(
        "poll_options",
        sa.Column("id", _UUID, primary_key=True, nullable=False),
        sa.Column("poll_id", _UUID, sa.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False),
        sa.Column("option_text", sa.String(length=500), nullable=False),
        sa.Column("option_order", sa.Integer(), nullable=False),
        sa.UniqueConstraint("poll_id", "option_order", name="uq_poll_option_order"),
    )
    op.create_index("ix_poll_options_poll_id", "poll_options", ["poll_id"])

    op.create_table(
        "poll_responses",
        sa.Column("id", _UUID, primary_key=True, nullable=False),
        sa.Column("poll_id", _UUID, sa.ForeignKey("polls.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("option_id", _UUID, sa.ForeignKey("poll_options.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("poll_id", "user_id", name="uq_poll_response_user"),
    )
    op.create_index("ix_poll_responses_poll_id", "poll_responses", ["poll_id"])
    op.create_index("ix_poll_responses_user_id", "poll_responses", ["user_id"])
    op.create_index("ix_poll_responses_option_id", "poll_responses", ["option_id"])


def downgrade() -> None:
    op.drop_table("poll_responses")
    op.drop_table("poll_options")
    op.drop_table("polls")
    op.drop_table("messages")
    op.drop_index("uq_group_single_admin", table_name="group_members")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("friendships")
    op.drop_index("uq_friend_request_pending_pair", table_name="friend_requests")
    op.drop_table("friend_requests")
    op.drop_table("users")

    bind = op.get_bind()
    for name in ("poll_status", "message_type", "group_member_role", "friend_request_status", "user_presence"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
