from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Annotated, NoReturn

from fastapi import Depends
from loguru import logger
from sqlalchemy import delete, update
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.core.enums import HandshakeStatus
from app.core.exceptions import (
    ExchangeFailedError,
    InvalidProfileError,
    LinkError,
    ProviderNotConfiguredError,
    StateAlreadyConsumedError,
    StateNotFoundError,
)
from app.core.security import (
    derive_proof_challenge,
    generate_proof_verifier,
    generate_state_token,
    hash_token,
    token_fingerprint,
)
from app.models.handshake import HandshakeRecord
from app.providers.client import ProviderClient
from app.providers.registry import describe
from app.providers.types import ExternalIdentity
from app.schemas.handshake import HandshakeInitiateResponse
from app.utils.misc import as_utc, get_utc_now


@dataclass(frozen=True)
class CompletedHandshake:
    handshake_id: int
    profile_id: str
    """Bound at initiation; the callback cannot choose it"""
    identity: ExternalIdentity


def _validate_profile_id(profile_id: str) -> str:
    """Check that the profile ID is a well-formed UUID and return its canonical form.

    Existence is checked later, at attachment time.
    """
    try:
        return str(uuid.UUID(profile_id))
    except (ValueError, TypeError, AttributeError):
        raise InvalidProfileError(diagnostics={"profile_id": profile_id}) from None


class HandshakeService:
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db)],
        provider_client: Annotated[ProviderClient, Depends()],
    ) -> None:
        self.db = db
        self.provider_client = provider_client

    async def initiate(
        self, profile_id: str, provider: str, redirect_uri: str | None = None
    ) -> HandshakeInitiateResponse:
        """Start a handshake and build the provider's authorization URL.

        Makes no network call. The only side effect is one new handshake record.
        """
        descriptor = describe(provider)
        profile_id = _validate_profile_id(profile_id)

        client_id, client_secret = settings.provider_credentials(descriptor.provider)
        if not client_id or not client_secret:
            raise ProviderNotConfiguredError(diagnostics={"provider": descriptor.provider})

        state_token = generate_state_token()
        proof_verifier = generate_proof_verifier() if descriptor.requires_proof else None
        redirect_uri = redirect_uri or settings.default_redirect_uri

        record = HandshakeRecord(
            state_hash=hash_token(state_token),
            provider=descriptor.provider,
            profile_id=profile_id,
            redirect_uri=redirect_uri,
            proof_verifier=proof_verifier,
            expires_at=get_utc_now() + timedelta(seconds=settings.handshake_ttl_seconds),
        )
        self.db.add(record)
        await self.db.commit()

        authorization_url = descriptor.build_authorization_url(
            client_id=client_id,
            redirect_uri=redirect_uri,
            state=state_token,
            code_challenge=derive_proof_challenge(proof_verifier) if proof_verifier else None,
        )
        logger.info(
            f"Initiated {descriptor.provider} handshake {token_fingerprint(state_token)} "
            f"for influencer {profile_id}"
        )
        return HandshakeInitiateResponse(
            authorization_url=authorization_url,
            state_token=state_token,
            proof_verifier=proof_verifier,
        )

    async def _claim(self, state_token: str) -> HandshakeRecord:
        """Atomically mark the handshake as consumed and return it.

        The conditional UPDATE is the compare-and-swap on ``consumed_at``: of any
        number of concurrent callbacks with the same token, exactly one matches a row.
        It is committed before any provider call is made.
        """
        now = get_utc_now()
        state_hash = hash_token(state_token)
        result = await self.db.exec(
            update(HandshakeRecord)  # pyright: ignore[reportArgumentType, reportCallIssue]
            .where(
                col(HandshakeRecord.state_hash) == state_hash,
                col(HandshakeRecord.consumed_at).is_(None),
                col(HandshakeRecord.expires_at) > now,
            )
            .values(consumed_at=now, status=HandshakeStatus.CALLBACK_RECEIVED)
            .execution_options(synchronize_session=False)
        )
        claimed = result.rowcount == 1  # pyright: ignore[reportAttributeAccessIssue]
        await self.db.commit()

        record = (
            await self.db.exec(
                select(HandshakeRecord)
                .where(HandshakeRecord.state_hash == state_hash)
                .execution_options(populate_existing=True)
            )
        ).first()
        fingerprint = token_fingerprint(state_token)

        if claimed and record:
            return record
        # Expiry wins over consumption: an expired token is reported as unknown
        if not record or as_utc(record.expires_at) <= now:
            logger.warning(f"Unknown or expired handshake state {fingerprint}")
            raise StateNotFoundError
        logger.warning(f"Replayed handshake state {fingerprint}")
        raise StateAlreadyConsumedError

    async def set_status(self, handshake_id: int, status: HandshakeStatus) -> None:
        await self.db.exec(
            update(HandshakeRecord)  # pyright: ignore[reportArgumentType, reportCallIssue]
            .where(col(HandshakeRecord.id) == handshake_id)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

    async def mark_failed(self, handshake_id: int) -> None:
        """Mark a handshake FAILED after an error that may have left the session mid-transaction."""
        await self.db.rollback()
        await self.set_status(handshake_id, HandshakeStatus.FAILED)

    async def complete_handshake(self, state_token: str, code: str) -> CompletedHandshake:
        """Validate the callback state and exchange the code for a verified identity.

        Raises:
            StateNotFoundError: Unknown or expired state token.
            StateAlreadyConsumedError: The state token was already used.
            ExchangeFailedError: The provider rejected the code or was unreachable.
            IdentityLookupFailedError: The identity endpoint failed.
        """
        record = await self._claim(state_token)
        descriptor = describe(record.provider)

        try:
            access_token = await self.provider_client.exchange_code(
                descriptor,
                code=code,
                redirect_uri=record.redirect_uri,
                code_verifier=record.proof_verifier,
            )
            identity = await self.provider_client.fetch_identity(descriptor, access_token)
        except LinkError as e:
            logger.warning(
                f"{descriptor.provider} handshake {record.id} failed: {e.kind} {e.diagnostics}"
            )
            await self.set_status(record.id, HandshakeStatus.FAILED)
            raise

        await self.set_status(record.id, HandshakeStatus.EXCHANGED)
        logger.info(
            f"{descriptor.provider} handshake {record.id} resolved account "
            f"{identity.platform_user_id} for influencer {record.profile_id}"
        )
        return CompletedHandshake(
            handshake_id=record.id, profile_id=record.profile_id, identity=identity
        )

    async def abort_handshake(
        self, state_token: str, error: str, description: str | None = None
    ) -> NoReturn:
        """Consume the state of a callback that carries a provider error instead of a code.

        Always raises: ``ExchangeFailedError`` once the state has been claimed, or the
        state error if the token is unknown, expired or already used.
        """
        record = await self._claim(state_token)
        await self.set_status(record.id, HandshakeStatus.FAILED)
        logger.warning(
            f"{record.provider} handshake {record.id} denied by provider: {error} {description}"
        )
        raise ExchangeFailedError(
            diagnostics={"provider": record.provider, "error": error, "description": description}
        )


async def sweep_expired_handshakes(db: AsyncSession) -> int:
    """Delete expired handshake records and return how many were removed."""
    result = await db.exec(
        delete(HandshakeRecord).where(  # pyright: ignore[reportArgumentType, reportCallIssue]
            col(HandshakeRecord.expires_at) <= get_utc_now()
        ).execution_options(synchronize_session=False)
    )
    await db.commit()
    removed: int = result.rowcount  # pyright: ignore[reportAttributeAccessIssue]
    if removed:
        logger.info(f"Swept {removed} expired handshake records")
    return removed
