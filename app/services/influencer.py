from collections.abc import Sequence
from typing import Annotated

from fastapi import Depends
from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.db import get_db
from app.core.enums import Provider
from app.core.exceptions import AccountNotFoundError, DuplicateAccountError, ProfileNotFoundError
from app.models.influencer import Influencer
from app.models.social_account import SocialAccount
from app.schemas.influencer import InfluencerCreate


class InfluencerService:
    """Profile store: influencers and their ordered collection of social accounts."""

    def __init__(self, db: Annotated[AsyncSession, Depends(get_db)]) -> None:
        self.db = db

    async def create_influencer(self, data: InfluencerCreate) -> Influencer:
        influencer = Influencer(name=data.name, email=data.email)
        self.db.add(influencer)
        await self.db.commit()
        await self.db.refresh(influencer)
        logger.info(f"Created influencer {influencer.id}")
        return influencer

    async def get_influencer(self, influencer_id: str) -> Influencer | None:
        result = await self.db.exec(select(Influencer).where(Influencer.id == influencer_id))
        return result.first()

    async def profile_exists(self, influencer_id: str) -> bool:
        return await self.get_influencer(influencer_id) is not None

    async def get_social_accounts(self, influencer_id: str) -> Sequence[SocialAccount]:
        """Return the influencer's accounts in the order they were linked."""
        result = await self.db.exec(
            select(SocialAccount)
            .where(SocialAccount.influencer_id == influencer_id)
            .order_by(col(SocialAccount.id))
        )
        return result.all()

    async def find_social_account(self, platform: Provider, platform_id: str) -> SocialAccount | None:
        result = await self.db.exec(
            select(SocialAccount).where(
                SocialAccount.platform == platform, SocialAccount.platform_id == platform_id
            )
        )
        return result.first()

    async def append_social_account(self, influencer_id: str, account: SocialAccount) -> SocialAccount:
        """Append an account to the influencer's collection.

        Existing accounts are never modified.

        Raises:
            ProfileNotFoundError: If the influencer does not exist.
            DuplicateAccountError: If ``(platform, platform_id)`` is already linked,
                to this influencer or any other. The existing row is attached to the error.
        """
        if not await self.profile_exists(influencer_id):
            raise ProfileNotFoundError(diagnostics={"profile_id": influencer_id})

        existing = await self.find_social_account(account.platform, account.platform_id)
        if existing:
            raise DuplicateAccountError(existing=existing)

        account.influencer_id = influencer_id
        self.db.add(account)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent attach of the same external account
            await self.db.rollback()
            existing = await self.find_social_account(account.platform, account.platform_id)
            if existing is None:
                raise
            raise DuplicateAccountError(existing=existing) from None

        await self.db.refresh(account)
        logger.info(
            f"Linked {account.platform} account {account.platform_id} to influencer {influencer_id}"
        )
        return account

    async def remove_social_account(
        self, influencer_id: str, platform: Provider, platform_id: str
    ) -> None:
        """Unlink one account from an influencer, leaving the others untouched."""
        if not await self.profile_exists(influencer_id):
            raise ProfileNotFoundError(diagnostics={"profile_id": influencer_id})

        account = await self.find_social_account(platform, platform_id)
        if not account or account.influencer_id != influencer_id:
            raise AccountNotFoundError(
                diagnostics={"platform": platform, "platform_id": platform_id}
            )

        await self.db.delete(account)
        await self.db.commit()
        logger.info(f"Unlinked {platform} account {platform_id} from influencer {influencer_id}")
