from typing import Literal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

from app.core.enums import Provider


class Config(BaseSettings):
    db_url: str
    env: Literal["prod", "dev"] = "prod"
    api_host: str = "127.0.0.1"
    api_port: int = 3011

    # Public origin of this service, used to build the default redirect URI
    public_base_url: str = "http://localhost:3011"

    # Handshake lifecycle
    handshake_ttl_seconds: int = 10 * 60  # 10 minutes
    handshake_sweep_interval_seconds: int = 5 * 60  # 0 disables the sweeper
    provider_timeout_seconds: float = 10.0

    # Provider credentials
    instagram_client_id: str | None = None
    instagram_client_secret: str | None = None
    twitter_client_id: str | None = None
    twitter_client_secret: str | None = None
    tiktok_client_key: str | None = None
    tiktok_client_secret: str | None = None
    facebook_app_id: str | None = None
    facebook_app_secret: str | None = None
    youtube_client_id: str | None = None
    youtube_client_secret: str | None = None
    linkedin_client_id: str | None = None
    linkedin_client_secret: str | None = None

    @property
    def is_dev(self) -> bool:
        return self.env == "dev"

    @property
    def default_redirect_uri(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/api/handshake/complete"

    def provider_credentials(self, provider: Provider) -> tuple[str | None, str | None]:
        """Return the (client id, client secret) pair configured for a provider."""
        match provider:
            case Provider.INSTAGRAM:
                return self.instagram_client_id, self.instagram_client_secret
            case Provider.TWITTER:
                return self.twitter_client_id, self.twitter_client_secret
            case Provider.TIKTOK:
                return self.tiktok_client_key, self.tiktok_client_secret
            case Provider.FACEBOOK:
                return self.facebook_app_id, self.facebook_app_secret
            case Provider.YOUTUBE:
                return self.youtube_client_id, self.youtube_client_secret
            case Provider.LINKEDIN:
                return self.linkedin_client_id, self.linkedin_client_secret


load_dotenv()
settings = Config()  # pyright: ignore[reportCallIssue]
