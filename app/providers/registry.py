"""Static per-provider OAuth metadata.

Every provider is described by a frozen ``ProviderDescriptor``: endpoints, scopes,
how the token request is encoded and how the identity response is parsed. The
handshake code consults the descriptor instead of branching on the provider name.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal
from urllib.parse import urlencode

from app.core.enums import Provider
from app.core.exceptions import UnknownProviderError
from app.providers.types import ExternalIdentity

IdentityParser = Callable[[dict[str, Any]], ExternalIdentity]


@dataclass(frozen=True)
class ProviderDescriptor:
    provider: Provider
    authorization_endpoint: str
    token_endpoint: str
    identity_endpoint: str
    scopes: tuple[str, ...]
    parse_identity: IdentityParser
    scope_separator: str = " "
    requires_proof: bool = False
    client_id_param: str = "client_id"
    token_method: Literal["GET", "POST"] = "POST"
    token_auth: Literal["body", "basic"] = "body"
    send_grant_type: bool = True
    identity_token_in_query: bool = False
    identity_params: Mapping[str, str] = field(default_factory=dict)
    extra_authorize_params: Mapping[str, str] = field(default_factory=dict)

    def build_authorization_url(
        self, *, client_id: str, redirect_uri: str, state: str, code_challenge: str | None = None
    ) -> str:
        params = {
            self.client_id_param: client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self.scope_separator.join(self.scopes),
            "state": state,
            **self.extra_authorize_params,
        }
        if code_challenge is not None:
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    def build_token_params(
        self,
        *,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
        code_verifier: str | None = None,
    ) -> dict[str, str]:
        params = {self.client_id_param: client_id, "code": code, "redirect_uri": redirect_uri}
        if self.token_auth == "body":
            params["client_secret"] = client_secret
        if self.send_grant_type:
            params["grant_type"] = "authorization_code"
        if code_verifier is not None:
            params["code_verifier"] = code_verifier
        return params


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


def _object(value: Any, name: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        msg = f"Expected a JSON object for {name}, got {type(value).__name__}"
        raise ValueError(msg)
    return value


def _required_str(value: Any, name: str) -> str:
    """Coerce a required identity field to a non-empty string."""
    if value is None or isinstance(value, dict | list | bool):
        msg = f"Identity field {name} is missing"
        raise ValueError(msg)
    text = str(value).strip()
    if not text:
        msg = f"Identity field {name} is empty"
        raise ValueError(msg)
    return text


def _parse_instagram(payload: dict[str, Any]) -> ExternalIdentity:
    payload = _object(payload, "payload")
    username = _required_str(payload.get("username"), "username")
    return ExternalIdentity(
        provider=Provider.INSTAGRAM,
        platform_user_id=_required_str(payload.get("id"), "id"),
        username=username,
        post_count=_optional_int(payload.get("media_count")),
        profile_url=f"https://www.instagram.com/{username}",
    )


def _parse_twitter(payload: dict[str, Any]) -> ExternalIdentity:
    user = _object(_object(payload, "payload").get("data"), "data")
    metrics = _object(user.get("public_metrics") or {}, "public_metrics")
    username = _required_str(user.get("username"), "username")
    return ExternalIdentity(
        provider=Provider.TWITTER,
        platform_user_id=_required_str(user.get("id"), "id"),
        username=username,
        display_name=user.get("name"),
        avatar_url=user.get("profile_image_url"),
        follower_count=_optional_int(metrics.get("followers_count")),
        following_count=_optional_int(metrics.get("following_count")),
        post_count=_optional_int(metrics.get("tweet_count")),
        verified=bool(user.get("verified", False)),
        profile_url=f"https://twitter.com/{username}",
    )


def _parse_tiktok(payload: dict[str, Any]) -> ExternalIdentity:
    data = _object(_object(payload, "payload").get("data"), "data")
    user = _object(data.get("user"), "data.user")
    username = _required_str(user.get("username") or user.get("display_name"), "username")
    return ExternalIdentity(
        provider=Provider.TIKTOK,
        platform_user_id=_required_str(user.get("open_id"), "open_id"),
        username=username,
        display_name=user.get("display_name"),
        avatar_url=user.get("avatar_url"),
        follower_count=_optional_int(user.get("follower_count")),
        following_count=_optional_int(user.get("following_count")),
        post_count=_optional_int(user.get("video_count")),
        verified=bool(user.get("is_verified", False)),
        profile_url=user.get("profile_deep_link"),
    )


def _parse_facebook(payload: dict[str, Any]) -> ExternalIdentity:
    payload = _object(payload, "payload")
    user_id = _required_str(payload.get("id"), "id")
    picture = _object(_object(payload.get("picture") or {}, "picture").get("data") or {}, "picture")
    return ExternalIdentity(
        provider=Provider.FACEBOOK,
        platform_user_id=user_id,
        username=_required_str(payload.get("name"), "name"),
        display_name=payload.get("name"),
        avatar_url=picture.get("url"),
        profile_url=f"https://www.facebook.com/{user_id}",
    )


def _parse_youtube(payload: dict[str, Any]) -> ExternalIdentity:
    # IndexError on an account without a channel is reported as a failed lookup
    channel = _object(_object(payload, "payload")["items"][0], "items[0]")
    snippet = _object(channel.get("snippet"), "snippet")
    statistics = _object(channel.get("statistics") or {}, "statistics")
    thumbnails = _object(snippet.get("thumbnails") or {}, "thumbnails")
    thumbnail = _object(thumbnails.get("default") or {}, "thumbnails.default")
    subscribers = None if statistics.get("hiddenSubscriberCount") else statistics.get("subscriberCount")
    channel_id = _required_str(channel.get("id"), "id")
    return ExternalIdentity(
        provider=Provider.YOUTUBE,
        platform_user_id=channel_id,
        username=_required_str(snippet.get("customUrl") or snippet.get("title"), "title"),
        display_name=snippet.get("title"),
        avatar_url=thumbnail.get("url"),
        follower_count=_optional_int(subscribers),
        post_count=_optional_int(statistics.get("videoCount")),
        profile_url=f"https://www.youtube.com/channel/{channel_id}",
    )


def _parse_linkedin(payload: dict[str, Any]) -> ExternalIdentity:
    payload = _object(payload, "payload")
    return ExternalIdentity(
        provider=Provider.LINKEDIN,
        platform_user_id=_required_str(payload.get("sub"), "sub"),
        username=_required_str(payload.get("name") or payload.get("email"), "name"),
        display_name=payload.get("name"),
        avatar_url=payload.get("picture"),
    )


PROVIDERS: Mapping[Provider, ProviderDescriptor] = {
    Provider.INSTAGRAM: ProviderDescriptor(
        provider=Provider.INSTAGRAM,
        authorization_endpoint="https://api.instagram.com/oauth/authorize",
        token_endpoint="https://api.instagram.com/oauth/access_token",
        identity_endpoint="https://graph.instagram.com/me",
        scopes=("user_profile", "user_media"),
        scope_separator=",",
        identity_token_in_query=True,
        identity_params={"fields": "id,username,media_count"},
        parse_identity=_parse_instagram,
    ),
    Provider.TWITTER: ProviderDescriptor(
        provider=Provider.TWITTER,
        authorization_endpoint="https://twitter.com/i/oauth2/authorize",
        token_endpoint="https://api.twitter.com/2/oauth2/token",
        identity_endpoint="https://api.twitter.com/2/users/me",
        scopes=("tweet.read", "users.read", "offline.access"),
        requires_proof=True,
        token_auth="basic",
        identity_params={"user.fields": "id,name,username,profile_image_url,public_metrics,verified"},
        parse_identity=_parse_twitter,
    ),
    Provider.TIKTOK: ProviderDescriptor(
        provider=Provider.TIKTOK,
        authorization_endpoint="https://www.tiktok.com/v2/auth/authorize/",
        token_endpoint="https://open.tiktokapis.com/v2/oauth/token/",
        identity_endpoint="https://open.tiktokapis.com/v2/user/info/",
        scopes=("user.info.basic", "user.info.profile", "user.info.stats"),
        scope_separator=",",
        client_id_param="client_key",
        identity_params={
            "fields": "open_id,union_id,avatar_url,display_name,username,profile_deep_link,"
            "is_verified,follower_count,following_count,video_count"
        },
        parse_identity=_parse_tiktok,
    ),
    Provider.FACEBOOK: ProviderDescriptor(
        provider=Provider.FACEBOOK,
        authorization_endpoint="https://www.facebook.com/v18.0/dialog/oauth",
        token_endpoint="https://graph.facebook.com/v18.0/oauth/access_token",
        identity_endpoint="https://graph.facebook.com/v18.0/me",
        scopes=("public_profile", "email"),
        scope_separator=",",
        token_method="GET",
        send_grant_type=False,
        identity_token_in_query=True,
        identity_params={"fields": "id,name,picture"},
        parse_identity=_parse_facebook,
    ),
    Provider.YOUTUBE: ProviderDescriptor(
        provider=Provider.YOUTUBE,
        authorization_endpoint="https://accounts.google.com/o/oauth2/v2/auth",
        token_endpoint="https://oauth2.googleapis.com/token",
        identity_endpoint="https://www.googleapis.com/youtube/v3/channels",
        scopes=(
            "https://www.googleapis.com/auth/youtube.readonly",
            "https://www.googleapis.com/auth/userinfo.profile",
        ),
        identity_params={"part": "snippet,statistics", "mine": "true"},
        extra_authorize_params={"access_type": "offline", "prompt": "consent"},
        parse_identity=_parse_youtube,
    ),
    Provider.LINKEDIN: ProviderDescriptor(
        provider=Provider.LINKEDIN,
        authorization_endpoint="https://www.linkedin.com/oauth/v2/authorization",
        token_endpoint="https://www.linkedin.com/oauth/v2/accessToken",
        identity_endpoint="https://api.linkedin.com/v2/userinfo",
        scopes=("openid", "profile", "email"),
        parse_identity=_parse_linkedin,
    ),
}


def describe(provider: str | Provider) -> ProviderDescriptor:
    """Look up the descriptor for a provider identifier.

    Raises:
        UnknownProviderError: If the identifier is not one of the supported providers.
    """
    try:
        return PROVIDERS[Provider(provider)]
    except ValueError:
        raise UnknownProviderError(diagnostics={"provider": provider}) from None
