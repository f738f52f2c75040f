from datetime import datetime

from pydantic import BaseModel, Field

from app.core.enums import Provider


class InfluencerCreate(BaseModel):
    """Schema for creating a new influencer profile."""

    name: str = Field(min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)


class SocialAccountRead(BaseModel):
    platform: Provider
    username: str
    platform_id: str
    display_name: str | None = None
    avatar_url: str | None = None
    follower_count: int
    following_count: int
    post_count: int
    engagement_rate: float
    verified: bool
    profile_url: str | None = None
    last_synced_at: datetime


class InfluencerRead(BaseModel):
    id: str
    name: str
    email: str | None = None
    created_at: datetime
    social_accounts: list[SocialAccountRead] = Field(
        default_factory=list, description="Linked accounts, in the order they were linked"
    )
