from typing import Annotated

from fastapi import Depends

from app.core.enums import HandshakeStatus
from app.schemas.handshake import LinkedAccountResponse
from app.services.attachment import AttachmentService
from app.services.handshake import HandshakeService


class LinkService:
    """Drives a callback through validation, exchange and attachment."""

    def __init__(
        self,
        handshake_service: Annotated[HandshakeService, Depends()],
        attachment_service: Annotated[AttachmentService, Depends()],
    ) -> None:
        self.handshake_service = handshake_service
        self.attachment_service = attachment_service

    async def complete(
        self,
        *,
        state_token: str,
        code: str | None,
        error: str | None = None,
        error_description: str | None = None,
    ) -> LinkedAccountResponse:
        if error or not code:
            await self.handshake_service.abort_handshake(
                state_token, error or "missing_code", error_description
            )

        completed = await self.handshake_service.complete_handshake(state_token, code)
        try:
            account, created = await self.attachment_service.attach(
                completed.profile_id, completed.identity
            )
        except Exception:
            await self.handshake_service.mark_failed(completed.handshake_id)
            raise

        await self.handshake_service.set_status(completed.handshake_id, HandshakeStatus.ATTACHED)
        return LinkedAccountResponse(
            platform=account.platform,
            username=account.username,
            platform_id=account.platform_id,
            created=created,
        )
