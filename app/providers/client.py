from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated, Any

import httpx
from fastapi import Depends
from loguru import logger

from app.core.config import settings
from app.core.exceptions import (
    ExchangeFailedError,
    IdentityLookupFailedError,
    ProviderNotConfiguredError,
)
from app.providers.registry import ProviderDescriptor
from app.providers.types import ExternalIdentity


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.provider_timeout_seconds) as client:
        yield client


def _response_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _extract_access_token(payload: Any) -> str | None:
    """Find the access token in a token response.

    Most providers return it at the top level; older TikTok responses nest it under ``data``.
    """
    if not isinstance(payload, dict):
        return None
    token = payload.get("access_token")
    if not token and isinstance(payload.get("data"), dict):
        token = payload["data"].get("access_token")
    return token or None


class ProviderClient:
    """Performs the two network calls of a handshake: code exchange and identity lookup.

    Neither call is retried. Authorization codes are single-use on the provider
    side, so a retry with the same code would fail anyway.
    """

    def __init__(self, http: Annotated[httpx.AsyncClient, Depends(get_http_client)]) -> None:
        self.http = http

    async def exchange_code(
        self,
        descriptor: ProviderDescriptor,
        *,
        code: str,
        redirect_uri: str,
        code_verifier: str | None = None,
    ) -> str:
        """Exchange an authorization code for an access token.

        Raises:
            ProviderNotConfiguredError: If the provider's credentials are missing.
            ExchangeFailedError: On transport errors, timeouts, non-2xx responses
                or a response without an access token.
        """
        client_id, client_secret = settings.provider_credentials(descriptor.provider)
        if not client_id or not client_secret:
            raise ProviderNotConfiguredError(diagnostics={"provider": descriptor.provider})

        params = descriptor.build_token_params(
            client_id=client_id,
            client_secret=client_secret,
            code=code,
            redirect_uri=redirect_uri,
            code_verifier=code_verifier,
        )

        try:
            if descriptor.token_method == "GET":
                response = await self.http.get(descriptor.token_endpoint, params=params)
            else:
                auth = (client_id, client_secret) if descriptor.token_auth == "basic" else None
                response = await self.http.post(
                    descriptor.token_endpoint,
                    data=params,
                    auth=auth,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            logger.error(f"{descriptor.provider} token exchange request failed: {e!r}")
            raise ExchangeFailedError(
                diagnostics={"provider": descriptor.provider, "error": repr(e)}
            ) from e

        payload = _response_payload(response)
        if not response.is_success:
            logger.error(
                f"{descriptor.provider} token exchange failed: {response.status_code} {payload}"
            )
            raise ExchangeFailedError(
                diagnostics={
                    "provider": descriptor.provider,
                    "status_code": response.status_code,
                    "body": payload,
                }
            )

        access_token = _extract_access_token(payload)
        if not access_token:
            logger.error(f"{descriptor.provider} token response has no access token: {payload}")
            raise ExchangeFailedError(
                diagnostics={"provider": descriptor.provider, "body": payload}
            )
        return access_token

    async def fetch_identity(
        self, descriptor: ProviderDescriptor, access_token: str
    ) -> ExternalIdentity:
        """Fetch and normalize the identity that owns ``access_token``.

        Raises:
            IdentityLookupFailedError: On transport errors, non-2xx responses or
                a response the provider's parser cannot normalize.
        """
        params = dict(descriptor.identity_params)
        headers: dict[str, str] = {}
        if descriptor.identity_token_in_query:
            params["access_token"] = access_token
        else:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            response = await self.http.get(
                descriptor.identity_endpoint, params=params, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"{descriptor.provider} identity request failed: {e!r}")
            raise IdentityLookupFailedError(
                diagnostics={"provider": descriptor.provider, "error": repr(e)}
            ) from e

        payload = _response_payload(response)
        if not response.is_success:
            logger.error(
                f"{descriptor.provider} identity lookup failed: {response.status_code} {payload}"
            )
            raise IdentityLookupFailedError(
                diagnostics={
                    "provider": descriptor.provider,
                    "status_code": response.status_code,
                    "body": payload,
                }
            )

        try:
            identity = descriptor.parse_identity(payload)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"{descriptor.provider} identity response not understood: {payload}")
            raise IdentityLookupFailedError(
                diagnostics={"provider": descriptor.provider, "body": payload, "error": repr(e)}
            ) from e

        if not identity.platform_user_id:
            raise IdentityLookupFailedError(
                diagnostics={"provider": descriptor.provider, "body": payload}
            )
        return identity
