from typing import Annotated

from fastapi import APIRouter, Depends

from app.core.exceptions import ProfileNotFoundError
from app.providers.registry import describe
from app.schemas.common import APIResponse
from app.schemas.influencer import InfluencerCreate, InfluencerRead, SocialAccountRead
from app.services.influencer import InfluencerService

router = APIRouter(prefix="/influencers", tags=["influencers"])


@router.post("/")
async def create_influencer(
    body: InfluencerCreate, service: Annotated[InfluencerService, Depends()]
) -> APIResponse[InfluencerRead]:
    influencer = await service.create_influencer(body)
    return APIResponse(
        data=InfluencerRead.model_validate(influencer, from_attributes=True),
        message="Influencer created successfully",
    )


@router.get("/{influencer_id}")
async def get_influencer(
    influencer_id: str, service: Annotated[InfluencerService, Depends()]
) -> APIResponse[InfluencerRead]:
    influencer = await service.get_influencer(influencer_id)
    if not influencer:
        raise ProfileNotFoundError
    accounts = await service.get_social_accounts(influencer_id)
    return APIResponse(
        data=InfluencerRead(
            id=influencer.id,
            name=influencer.name,
            email=influencer.email,
            created_at=influencer.created_at,
            social_accounts=[
                SocialAccountRead.model_validate(account, from_attributes=True)
                for account in accounts
            ],
        )
    )


@router.get("/{influencer_id}/social-accounts")
async def get_social_accounts(
    influencer_id: str, service: Annotated[InfluencerService, Depends()]
) -> APIResponse[list[SocialAccountRead]]:
    if not await service.profile_exists(influencer_id):
        raise ProfileNotFoundError
    accounts = await service.get_social_accounts(influencer_id)
    return APIResponse(
        data=[SocialAccountRead.model_validate(account, from_attributes=True) for account in accounts]
    )


@router.delete("/{influencer_id}/social-accounts/{platform}/{platform_id}")
async def disconnect_social_account(
    influencer_id: str,
    platform: str,
    platform_id: str,
    service: Annotated[InfluencerService, Depends()],
) -> APIResponse[None]:
    descriptor = describe(platform)
    await service.remove_social_account(influencer_id, descriptor.provider, platform_id)
    return APIResponse(message=f"{descriptor.provider} account disconnected")
