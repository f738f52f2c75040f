import os

# Settings are read at import time, so the environment has to be in place first
os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")
os.environ["HANDSHAKE_SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["PUBLIC_BASE_URL"] = "http://test"
for _prefix in ("INSTAGRAM", "TWITTER", "YOUTUBE", "LINKEDIN"):
    os.environ[f"{_prefix}_CLIENT_ID"] = f"{_prefix.lower()}-client-id"
    os.environ[f"{_prefix}_CLIENT_SECRET"] = f"{_prefix.lower()}-client-secret"
os.environ["TIKTOK_CLIENT_KEY"] = "tiktok-client-key"
os.environ["TIKTOK_CLIENT_SECRET"] = "tiktok-client-secret"
os.environ["FACEBOOK_APP_ID"] = "facebook-app-id"
os.environ["FACEBOOK_APP_SECRET"] = "facebook-app-secret"

from typing import Any  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

import app.models.handshake  # noqa: E402, F401
import app.models.influencer  # noqa: E402, F401
import app.models.social_account  # noqa: E402, F401
from app.core.db import get_db  # noqa: E402
from app.core.enums import Provider  # noqa: E402
from app.main import app  # noqa: E402
from app.providers.client import ProviderClient, get_http_client  # noqa: E402
from app.providers.registry import PROVIDERS  # noqa: E402
from app.services.handshake import HandshakeService  # noqa: E402

IDENTITY_PAYLOADS: dict[Provider, Any] = {
    Provider.INSTAGRAM: {"id": "ig_42", "username": "alice", "media_count": 12},
    Provider.TWITTER: {
        "data": {
            "id": "tw_7",
            "username": "alice_tweets",
            "name": "Alice",
            "profile_image_url": "https://pbs.twimg.com/alice.jpg",
            "verified": True,
            "public_metrics": {
                "followers_count": 1500,
                "following_count": 80,
                "tweet_count": 320,
            },
        }
    },
    Provider.TIKTOK: {
        "data": {
            "user": {
                "open_id": "tt_open_9",
                "display_name": "Alice Dances",
                "username": "alicedances",
                "avatar_url": "https://p16.tiktokcdn.com/alice.jpeg",
                "follower_count": 9000,
                "following_count": 12,
                "video_count": 45,
                "is_verified": False,
            }
        },
        "error": {"code": "ok"},
    },
    Provider.FACEBOOK: {
        "id": "fb_1001",
        "name": "Alice Example",
        "picture": {"data": {"url": "https://graph.facebook.com/alice.png"}},
    },
    Provider.YOUTUBE: {
        "items": [
            {
                "id": "UC_alice",
                "snippet": {
                    "title": "Alice Vlogs",
                    "customUrl": "@alicevlogs",
                    "thumbnails": {"default": {"url": "https://yt3.ggpht.com/alice.jpg"}},
                },
                "statistics": {
                    "subscriberCount": "25000",
                    "videoCount": "88",
                    "hiddenSubscriberCount": False,
                },
            }
        ]
    },
    Provider.LINKEDIN: {
        "sub": "li_abc",
        "name": "Alice Example",
        "email": "alice@example.com",
        "picture": "https://media.licdn.com/alice.jpg",
    },
}


class FakeProviders:
    """In-process stand-in for every provider's token and identity endpoint.

    A configured response is either a ``(status_code, json_body)`` pair or an
    exception instance, which is raised as a transport error.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_responses: dict[Provider, tuple[int, Any] | Exception] = {}
        self.identity_responses: dict[Provider, tuple[int, Any] | Exception] = {}

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).split("?", 1)[0] == url]

    def _respond(self, configured: tuple[int, Any] | Exception) -> httpx.Response:
        if isinstance(configured, Exception):
            raise configured
        status_code, body = configured
        return httpx.Response(status_code, json=body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?", 1)[0]
        for provider, descriptor in PROVIDERS.items():
            if url == descriptor.token_endpoint:
                return self._respond(
                    self.token_responses.get(
                        provider,
                        (200, {"access_token": f"{provider}-access-token", "expires_in": 3600}),
                    )
                )
            if url == descriptor.identity_endpoint:
                return self._respond(
                    self.identity_responses.get(provider, (200, IDENTITY_PAYLOADS[provider]))
                )
        return httpx.Response(404, json={"error": "not_found"})


@pytest.fixture
def fake_providers() -> FakeProviders:
    return FakeProviders()


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'linking.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def http_client(fake_providers):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_providers.handler)) as client:
        yield client


@pytest.fixture
def handshake_service(db, http_client) -> HandshakeService:
    return HandshakeService(db, ProviderClient(http_client))


@pytest_asyncio.fixture
async def client(session_maker, fake_providers):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    async def override_get_http_client():
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(fake_providers.handler)
        ) as http:
            yield http

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_http_client] = override_get_http_client
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as api:
        yield api

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_http_client, None)
