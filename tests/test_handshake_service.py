import uuid
from datetime import timedelta
from urllib.parse import parse_qs, urlsplit

import pytest
from sqlmodel import select

from app.core.config import settings
from app.core.enums import HandshakeStatus, Provider
from app.core.exceptions import (
    ExchangeFailedError,
    IdentityLookupFailedError,
    InvalidProfileError,
    ProviderNotConfiguredError,
    StateAlreadyConsumedError,
    StateNotFoundError,
    UnknownProviderError,
)
from app.core.security import derive_proof_challenge, hash_token
from app.models.handshake import HandshakeRecord
from app.services.handshake import sweep_expired_handshakes
from app.utils.misc import get_utc_now

PROFILE_ID = "0b5c3f0e-6a44-4c55-9a43-2f1f3bde6f10"


async def _record(db, state_token: str) -> HandshakeRecord:
    result = await db.exec(
        select(HandshakeRecord)
        .where(HandshakeRecord.state_hash == hash_token(state_token))
        .execution_options(populate_existing=True)
    )
    record = result.first()
    assert record is not None
    return record


@pytest.mark.asyncio
async def test_initiate_persists_unconsumed_record(handshake_service, db, fake_providers):
    started = await handshake_service.initiate(PROFILE_ID, "instagram")

    record = await _record(db, started.state_token)
    assert record.provider is Provider.INSTAGRAM
    assert record.profile_id == PROFILE_ID
    assert record.consumed_at is None
    assert record.status is HandshakeStatus.INITIATED
    assert record.proof_verifier is None
    assert record.redirect_uri == "http://test/api/handshake/complete"
    # The raw token is never stored
    assert record.state_hash != started.state_token

    query = parse_qs(urlsplit(started.authorization_url).query)
    assert query["state"] == [started.state_token]
    assert started.proof_verifier is None
    # No provider call happens at initiation
    assert fake_providers.requests == []


@pytest.mark.asyncio
async def test_initiate_normalizes_profile_id(handshake_service, db):
    started = await handshake_service.initiate(PROFILE_ID.upper(), "facebook")
    assert (await _record(db, started.state_token)).profile_id == PROFILE_ID


@pytest.mark.asyncio
async def test_state_tokens_are_unique(handshake_service):
    tokens = {(await handshake_service.initiate(PROFILE_ID, "linkedin")).state_token for _ in range(50)}
    assert len(tokens) == 50


@pytest.mark.asyncio
async def test_initiate_twitter_stores_verifier_and_sends_challenge(handshake_service, db):
    started = await handshake_service.initiate(PROFILE_ID, "twitter")

    assert started.proof_verifier
    query = parse_qs(urlsplit(started.authorization_url).query)
    assert query["code_challenge"] == [derive_proof_challenge(started.proof_verifier)]
    assert started.proof_verifier not in started.authorization_url
    assert (await _record(db, started.state_token)).proof_verifier == started.proof_verifier


@pytest.mark.asyncio
async def test_initiate_uses_caller_redirect_uri(handshake_service, db):
    started = await handshake_service.initiate(
        PROFILE_ID, "youtube", redirect_uri="https://app.example.com/connect/callback"
    )
    query = parse_qs(urlsplit(started.authorization_url).query)
    assert query["redirect_uri"] == ["https://app.example.com/connect/callback"]
    record = await _record(db, started.state_token)
    assert record.redirect_uri == "https://app.example.com/connect/callback"


@pytest.mark.asyncio
async def test_initiate_rejects_unknown_provider(handshake_service):
    with pytest.raises(UnknownProviderError):
        await handshake_service.initiate(PROFILE_ID, "myspace")


@pytest.mark.asyncio
@pytest.mark.parametrize("profile_id", ["p1", "", "1234", "not-a-uuid-at-all"])
async def test_initiate_rejects_malformed_profile_id(handshake_service, profile_id):
    with pytest.raises(InvalidProfileError):
        await handshake_service.initiate(profile_id, "instagram")


@pytest.mark.asyncio
async def test_initiate_does_not_check_profile_existence(handshake_service):
    started = await handshake_service.initiate(str(uuid.uuid4()), "instagram")
    assert started.state_token


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("setting", "provider"),
    [
        ("tiktok_client_key", "tiktok"),
        ("tiktok_client_secret", "tiktok"),
        ("facebook_app_secret", "facebook"),
        ("twitter_client_secret", "twitter"),
    ],
)
async def test_initiate_requires_configured_client(
    handshake_service, db, monkeypatch, setting, provider
):
    monkeypatch.setattr(settings, setting, None)
    with pytest.raises(ProviderNotConfiguredError):
        await handshake_service.initiate(PROFILE_ID, provider)

    result = await db.exec(select(HandshakeRecord))
    assert result.all() == []


@pytest.mark.asyncio
async def test_identity_without_username_fails_lookup(handshake_service, db, fake_providers):
    fake_providers.identity_responses[Provider.INSTAGRAM] = (200, {"id": "ig_42", "username": None})
    started = await handshake_service.initiate(PROFILE_ID, "instagram")

    with pytest.raises(IdentityLookupFailedError):
        await handshake_service.complete_handshake(started.state_token, "code123")
    assert (await _record(db, started.state_token)).status is HandshakeStatus.FAILED


@pytest.mark.asyncio
async def test_complete_returns_identity_bound_to_initiating_profile(handshake_service, db):
    started = await handshake_service.initiate(PROFILE_ID, "instagram")

    completed = await handshake_service.complete_handshake(started.state_token, "code123")

    assert completed.profile_id == PROFILE_ID
    assert completed.identity.provider is Provider.INSTAGRAM
    assert completed.identity.platform_user_id == "ig_42"
    assert completed.identity.username == "alice"
    record = await _record(db, started.state_token)
    assert record.consumed_at is not None
    assert record.status is HandshakeStatus.EXCHANGED


@pytest.mark.asyncio
async def test_complete_twice_fails_state_already_consumed(handshake_service):
    started = await handshake_service.initiate(PROFILE_ID, "instagram")
    await handshake_service.complete_handshake(started.state_token, "code123")

    with pytest.raises(StateAlreadyConsumedError):
        await handshake_service.complete_handshake(started.state_token, "code123")


@pytest.mark.asyncio
async def test_complete_unknown_state(handshake_service, fake_providers):
    with pytest.raises(StateNotFoundError):
        await handshake_service.complete_handshake("never-issued", "code123")
    assert fake_providers.requests == []


@pytest.mark.asyncio
async def test_complete_expired_state(handshake_service, fake_providers, monkeypatch):
    monkeypatch.setattr(settings, "handshake_ttl_seconds", -1)
    started = await handshake_service.initiate(PROFILE_ID, "instagram")

    with pytest.raises(StateNotFoundError):
        await handshake_service.complete_handshake(started.state_token, "code123")
    assert fake_providers.requests == []


@pytest.mark.asyncio
async def test_expired_consumed_state_is_reported_as_not_found(handshake_service, db):
    started = await handshake_service.initiate(PROFILE_ID, "instagram")
    await handshake_service.complete_handshake(started.state_token, "code123")

    record = await _record(db, started.state_token)
    record.expires_at = get_utc_now() - timedelta(seconds=1)
    db.add(record)
    await db.commit()

    with pytest.raises(StateNotFoundError):
        await handshake_service.complete_handshake(started.state_token, "code123")


@pytest.mark.asyncio
async def test_complete_sends_stored_verifier_to_token_endpoint(handshake_service, fake_providers):
    started = await handshake_service.initiate(PROFILE_ID, "twitter")
    await handshake_service.complete_handshake(started.state_token, "code123")

    (request,) = fake_providers.requests_to("https://api.twitter.com/2/oauth2/token")
    form = parse_qs(request.content.decode())
    assert form["code_verifier"] == [started.proof_verifier]
    assert form["redirect_uri"] == ["http://test/api/handshake/complete"]


@pytest.mark.asyncio
async def test_failed_exchange_burns_the_state(handshake_service, db, fake_providers):
    fake_providers.token_responses[Provider.INSTAGRAM] = (400, {"error_message": "invalid code"})
    started = await handshake_service.initiate(PROFILE_ID, "instagram")

    with pytest.raises(ExchangeFailedError):
        await handshake_service.complete_handshake(started.state_token, "bad")
    assert (await _record(db, started.state_token)).status is HandshakeStatus.FAILED

    # A failed handshake is never retried with the same state
    del fake_providers.token_responses[Provider.INSTAGRAM]
    with pytest.raises(StateAlreadyConsumedError):
        await handshake_service.complete_handshake(started.state_token, "good")


@pytest.mark.asyncio
async def test_failed_identity_lookup(handshake_service, db, fake_providers):
    fake_providers.identity_responses[Provider.LINKEDIN] = (500, {"message": "boom"})
    started = await handshake_service.initiate(PROFILE_ID, "linkedin")

    with pytest.raises(IdentityLookupFailedError):
        await handshake_service.complete_handshake(started.state_token, "code123")
    assert (await _record(db, started.state_token)).status is HandshakeStatus.FAILED


@pytest.mark.asyncio
async def test_abort_handshake_consumes_state(handshake_service, db, fake_providers):
    started = await handshake_service.initiate(PROFILE_ID, "facebook")

    with pytest.raises(ExchangeFailedError) as exc_info:
        await handshake_service.abort_handshake(started.state_token, "access_denied", "User denied")
    assert exc_info.value.diagnostics["error"] == "access_denied"
    assert fake_providers.requests == []

    with pytest.raises(StateAlreadyConsumedError):
        await handshake_service.complete_handshake(started.state_token, "code123")


@pytest.mark.asyncio
async def test_sweep_removes_only_expired_records(handshake_service, db, monkeypatch):
    live = await handshake_service.initiate(PROFILE_ID, "instagram")
    monkeypatch.setattr(settings, "handshake_ttl_seconds", -1)
    expired = await handshake_service.initiate(PROFILE_ID, "instagram")

    assert await sweep_expired_handshakes(db) == 1

    assert (await _record(db, live.state_token)).consumed_at is None
    result = await db.exec(
        select(HandshakeRecord).where(HandshakeRecord.state_hash == hash_token(expired.state_token))
    )
    assert result.first() is None
