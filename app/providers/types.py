from __future__ import annotations

from dataclasses import dataclass

from app.core.enums import Provider


@dataclass(frozen=True)
class ExternalIdentity:
    """Provider-verified identity of an external account.

    ``(provider, platform_user_id)`` is the natural key of the account.
    """

    provider: Provider
    platform_user_id: str
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    follower_count: int | None = None
    following_count: int | None = None
    post_count: int | None = None
    verified: bool = False
    profile_url: str | None = None
