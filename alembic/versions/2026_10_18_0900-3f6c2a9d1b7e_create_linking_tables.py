# pyright: reportAttributeAccessIssue=false, reportUndefinedVariable=false
"""create_linking_tables

Revision ID: 3f6c2a9d1b7e
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel.sql.sqltypes

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f6c2a9d1b7e"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

PROVIDER_ENUM = sa.Enum(
    "INSTAGRAM", "TWITTER", "TIKTOK", "FACEBOOK", "YOUTUBE", "LINKEDIN", name="provider"
)
HANDSHAKE_STATUS_ENUM = sa.Enum(
    "INITIATED", "CALLBACK_RECEIVED", "EXCHANGED", "ATTACHED", "FAILED", name="handshakestatus"
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "influencers",
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("id", sqlmodel.sql.sqltypes.AutoString(length=36), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "handshake_records",
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("state_hash", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("provider", PROVIDER_ENUM, nullable=False),
        sa.Column("profile_id", sqlmodel.sql.sqltypes.AutoString(length=36), nullable=False),
        sa.Column("redirect_uri", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("proof_verifier", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("status", HANDSHAKE_STATUS_ENUM, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_handshake_records_id"), "handshake_records", ["id"], unique=False)
    op.create_index(
        op.f("ix_handshake_records_state_hash"), "handshake_records", ["state_hash"], unique=True
    )
    op.create_index(
        op.f("ix_handshake_records_profile_id"), "handshake_records", ["profile_id"], unique=False
    )
    op.create_index(
        op.f("ix_handshake_records_expires_at"), "handshake_records", ["expires_at"], unique=False
    )

    op.create_table(
        "social_accounts",
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("influencer_id", sqlmodel.sql.sqltypes.AutoString(length=36), nullable=False),
        sa.Column("platform", PROVIDER_ENUM, nullable=False),
        sa.Column("username", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("platform_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("display_name", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("avatar_url", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("follower_count", sa.Integer(), nullable=False),
        sa.Column("following_count", sa.Integer(), nullable=False),
        sa.Column("post_count", sa.Integer(), nullable=False),
        sa.Column("engagement_rate", sa.Float(), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("profile_url", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["influencer_id"], ["influencers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "platform", "platform_id", name="uq_social_accounts_platform_platform_id"
        ),
    )
    op.create_index(op.f("ix_social_accounts_id"), "social_accounts", ["id"], unique=False)
    op.create_index(
        op.f("ix_social_accounts_influencer_id"), "social_accounts", ["influencer_id"], unique=False
    )
    op.create_index(
        op.f("ix_social_accounts_platform_id"), "social_accounts", ["platform_id"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_social_accounts_platform_id"), table_name="social_accounts")
    op.drop_index(op.f("ix_social_accounts_influencer_id"), table_name="social_accounts")
    op.drop_index(op.f("ix_social_accounts_id"), table_name="social_accounts")
    op.drop_table("social_accounts")
    op.drop_index(op.f("ix_handshake_records_expires_at"), table_name="handshake_records")
    op.drop_index(op.f("ix_handshake_records_profile_id"), table_name="handshake_records")
    op.drop_index(op.f("ix_handshake_records_state_hash"), table_name="handshake_records")
    op.drop_index(op.f("ix_handshake_records_id"), table_name="handshake_records")
    op.drop_table("handshake_records")
    op.drop_table("influencers")
    PROVIDER_ENUM.drop(op.get_bind(), checkfirst=True)
    HANDSHAKE_STATUS_ENUM.drop(op.get_bind(), checkfirst=True)
