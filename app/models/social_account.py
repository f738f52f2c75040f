from datetime import datetime

import sqlmodel

from app.core.enums import Provider
from app.utils.misc import get_utc_now

from ._base import BaseModel


class SocialAccount(BaseModel, table=True):
    __tablename__: str = "social_accounts"
    __table_args__ = (
        # One external account can only ever belong to one influencer
        sqlmodel.UniqueConstraint(
            "platform", "platform_id", name="uq_social_accounts_platform_platform_id"
        ),
    )

    id: int = sqlmodel.Field(primary_key=True, index=True, default=None)
    influencer_id: str = sqlmodel.Field(foreign_key="influencers.id", index=True, max_length=36)
    platform: Provider
    username: str
    platform_id: str = sqlmodel.Field(index=True)
    """Provider-scoped stable user ID"""
    display_name: str | None = sqlmodel.Field(default=None, nullable=True)
    avatar_url: str | None = sqlmodel.Field(default=None, nullable=True)
    follower_count: int = sqlmodel.Field(default=0, ge=0)
    following_count: int = sqlmodel.Field(default=0, ge=0)
    post_count: int = sqlmodel.Field(default=0, ge=0)
    engagement_rate: float = sqlmodel.Field(default=0.0, ge=0)
    verified: bool = False
    profile_url: str | None = sqlmodel.Field(default=None, nullable=True)
    last_synced_at: datetime = sqlmodel.Field(
        default_factory=get_utc_now, sa_type=sqlmodel.DateTime(timezone=True)
    )
