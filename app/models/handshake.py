from datetime import datetime

import sqlmodel

from app.core.enums import HandshakeStatus, Provider

from ._base import BaseModel


class HandshakeRecord(BaseModel, table=True):
    """Correlation state for one in-flight account-linking handshake.

    Only the SHA-256 digest of the state token is stored. ``consumed_at`` is set
    exactly once, by the atomic claim in the callback step.
    """

    __tablename__: str = "handshake_records"

    id: int = sqlmodel.Field(primary_key=True, index=True, default=None)
    state_hash: str = sqlmodel.Field(max_length=64, index=True, unique=True)
    provider: Provider
    profile_id: str = sqlmodel.Field(max_length=36, index=True)
    """Influencer the account will be attached to; never taken from the callback"""
    redirect_uri: str
    proof_verifier: str | None = sqlmodel.Field(default=None, nullable=True)
    """PKCE code verifier, only for providers that require proof-of-possession"""
    status: HandshakeStatus = HandshakeStatus.INITIATED
    expires_at: datetime = sqlmodel.Field(index=True, sa_type=sqlmodel.DateTime(timezone=True))
    consumed_at: datetime | None = sqlmodel.Field(
        default=None, nullable=True, sa_type=sqlmodel.DateTime(timezone=True)
    )
