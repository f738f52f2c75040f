from typing import Annotated

from fastapi import Depends
from loguru import logger

from app.core.exceptions import AccountLinkedElsewhereError, DuplicateAccountError
from app.models.social_account import SocialAccount
from app.providers.types import ExternalIdentity
from app.services.influencer import InfluencerService
from app.utils.misc import get_utc_now


def _account_from_identity(identity: ExternalIdentity) -> SocialAccount:
    return SocialAccount(
        platform=identity.provider,
        username=identity.username,
        platform_id=identity.platform_user_id,
        display_name=identity.display_name,
        avatar_url=identity.avatar_url,
        follower_count=identity.follower_count or 0,
        following_count=identity.following_count or 0,
        post_count=identity.post_count or 0,
        verified=identity.verified,
        profile_url=identity.profile_url,
        last_synced_at=get_utc_now(),
    )


class AttachmentService:
    def __init__(self, influencer_service: Annotated[InfluencerService, Depends()]) -> None:
        self.influencer_service = influencer_service

    async def attach(self, profile_id: str, identity: ExternalIdentity) -> tuple[SocialAccount, bool]:
        """Link a verified external identity to an influencer.

        Returns the account and whether it was newly created. Attaching an identity the
        influencer already holds returns the existing account unchanged.

        Raises:
            ProfileNotFoundError: If the influencer does not exist.
            AccountLinkedElsewhereError: If the identity belongs to another influencer.
        """
        try:
            account = await self.influencer_service.append_social_account(
                profile_id, _account_from_identity(identity)
            )
        except DuplicateAccountError as e:
            if e.existing.influencer_id != profile_id:
                logger.warning(
                    f"{identity.provider} account {identity.platform_user_id} is already linked "
                    f"to influencer {e.existing.influencer_id}, refusing to link to {profile_id}"
                )
                raise AccountLinkedElsewhereError(
                    diagnostics={
                        "platform": identity.provider,
                        "platform_id": identity.platform_user_id,
                    }
                ) from None
            return e.existing, False
        return account, True
