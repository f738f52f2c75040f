from typing import Annotated

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.providers.registry import PROVIDERS
from app.schemas.common import APIResponse
from app.schemas.handshake import (
    HandshakeCompleteRequest,
    HandshakeInitiateRequest,
    HandshakeInitiateResponse,
    LinkedAccountResponse,
    ProviderInfo,
)
from app.services.handshake import HandshakeService
from app.services.link import LinkService

router = APIRouter(prefix="/handshake", tags=["handshake"])


@router.get("/providers")
async def get_providers() -> APIResponse[list[ProviderInfo]]:
    providers = [
        ProviderInfo(
            provider=descriptor.provider,
            scopes=list(descriptor.scopes),
            requires_proof=descriptor.requires_proof,
            configured=all(settings.provider_credentials(descriptor.provider)),
        )
        for descriptor in PROVIDERS.values()
    ]
    return APIResponse(data=providers)


@router.post("/initiate")
async def initiate_handshake(
    body: HandshakeInitiateRequest, service: Annotated[HandshakeService, Depends()]
) -> APIResponse[HandshakeInitiateResponse]:
    """Start linking a social account to an influencer.

    The caller must keep ``state_token`` (and ``proof_verifier`` when present) and
    send the provider's redirect parameters back to ``/handshake/complete``.
    """
    result = await service.initiate(body.profile_id, body.provider, body.redirect_uri)
    return APIResponse(data=result)


@router.get("/complete")
async def complete_handshake_redirect(
    state: str,
    service: Annotated[LinkService, Depends()],
    code: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
) -> APIResponse[LinkedAccountResponse]:
    """Provider redirect target. Any identity fields in the query string are ignored."""
    account = await service.complete(
        state_token=state, code=code, error=error, error_description=error_description
    )
    return APIResponse(data=account, message=f"{account.platform} account linked")


@router.post("/complete")
async def complete_handshake(
    body: HandshakeCompleteRequest, service: Annotated[LinkService, Depends()]
) -> APIResponse[LinkedAccountResponse]:
    account = await service.complete(
        state_token=body.state_token,
        code=body.code,
        error=body.error,
        error_description=body.error_description,
    )
    return APIResponse(data=account, message=f"{account.platform} account linked")
