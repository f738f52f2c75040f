from pydantic import BaseModel, Field

from app.core.enums import Provider


class HandshakeInitiateRequest(BaseModel):
    profile_id: str
    # Plain string so that unsupported values surface as UnknownProvider rather than a 422
    provider: str
    redirect_uri: str | None = Field(
        default=None, description="Overrides the configured callback URL for this handshake"
    )


class HandshakeInitiateResponse(BaseModel):
    authorization_url: str
    state_token: str
    proof_verifier: str | None = Field(
        default=None, description="PKCE verifier, only returned for providers that require it"
    )


class HandshakeCompleteRequest(BaseModel):
    """Redirect parameters forwarded by the caller after the provider's consent screen.

    Identity fields (username, user ID, ...) are deliberately not accepted here.
    """

    state_token: str = Field(min_length=1)
    code: str | None = None
    error: str | None = None
    error_description: str | None = None


class LinkedAccountResponse(BaseModel):
    platform: Provider
    username: str
    platform_id: str
    created: bool = Field(description="False when the account was already linked to this profile")


class ProviderInfo(BaseModel):
    provider: Provider
    scopes: list[str]
    requires_proof: bool
    configured: bool
