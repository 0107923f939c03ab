"""Create schema - users, conversations, messages, ideas

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# --- Enum types ---
user_role_enum = sa.Enum("user", "admin", name="userrole", create_type=False)
sender_enum = sa.Enum("user", "system", name="sender", create_type=False)
idea_category_enum = sa.Enum("Learning", "Startup", "All", name="ideacategory", create_type=False)
idea_icon_enum = sa.Enum("code", "lightning", "book", name="ideaicon", create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("is_deleted", sa.Boolean, server_default="false", nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in (user_role_enum, sender_enum, idea_category_enum, idea_icon_enum):
        enum_type.create(bind, checkfirst=True)

    # 1. users
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", user_role_enum, server_default="user", nullable=False),
        sa.Column("remaining_ideas", sa.Integer, server_default="10", nullable=False),
        sa.Column("last_idea_reset_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("connection_id", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_is_deleted", "users", ["is_deleted"])

    # 2. conversations
    op.create_table(
        "conversations",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("last_message_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_conversations_user_id", "conversations", ["user_id"])
    op.create_index("ix_conversations_last_message_at", "conversations", ["last_message_at"])
    op.create_index("ix_conversations_is_deleted", "conversations", ["is_deleted"])

    # 3. messages (idea_id FK added after ideas exists)
    op.create_table(
        "messages",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("conversation_id", UUID(as_uuid=True), sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("sender", sender_enum, nullable=False),
        sa.Column("contains_idea", sa.Boolean, server_default="false", nullable=False),
        sa.Column("idea_id", UUID(as_uuid=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_messages_conversation_id", "messages", ["conversation_id"])
    op.create_index("ix_messages_conversation_created", "messages", ["conversation_id", "created_at"])
    op.create_index("ix_messages_contains_idea", "messages", ["contains_idea"])
    op.create_index("ix_messages_is_deleted", "messages", ["is_deleted"])

    # 4. ideas
    op.create_table(
        "ideas",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("conversation_id", UUID(as_uuid=True), sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("message_id", UUID(as_uuid=True), sa.ForeignKey("messages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("summary", sa.Text, nullable=False),
        sa.Column("category", idea_category_enum, server_default="All", nullable=False),
        sa.Column("icon", idea_icon_enum, server_default="lightning", nullable=False),
        sa.Column("problem_solved", sa.Text, nullable=False),
        sa.Column("target_audience", sa.Text, nullable=False),
        sa.Column("core_features", JSONB, server_default="[]", nullable=False),
        sa.Column("benefits", JSONB, server_default="[]", nullable=False),
        sa.Column("tech_stack", JSONB, server_default="[]", nullable=False),
        sa.Column("monetization", JSONB, server_default="[]", nullable=False),
        sa.Column("challenges", JSONB, server_default="[]", nullable=False),
        sa.Column("next_steps", JSONB, server_default="[]", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_ideas_user_id", "ideas", ["user_id"])
    op.create_index("ix_ideas_conversation_id", "ideas", ["conversation_id"])
    op.create_index("ix_ideas_message_id", "ideas", ["message_id"])
    op.create_index("ix_ideas_category", "ideas", ["category"])
    op.create_index("ix_ideas_title", "ideas", ["title"])
    op.create_index("ix_ideas_is_deleted", "ideas", ["is_deleted"])

    op.create_foreign_key(
        "fk_messages_idea_id_ideas", "messages", "ideas", ["idea_id"], ["id"], ondelete="SET NULL"
    )


def downgrade() -> None:
    op.drop_constraint("fk_messages_idea_id_ideas", "messages", type_="foreignkey")
    op.drop_table("ideas")
    op.drop_table("messages")
    op.drop_table("conversations")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (idea_icon_enum, idea_category_enum, sender_enum, user_role_enum):
        enum_type.drop(bind, checkfirst=True)
