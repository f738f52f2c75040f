from __future__ import annotations

import base64
import hashlib
import secrets

# 32 random bytes -> 43 URL-safe characters, 256 bits of entropy
TOKEN_BYTES = 32


def generate_state_token() -> str:
    """Generate a high-entropy opaque state token for one handshake."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def generate_proof_verifier() -> str:
    """Generate a PKCE code verifier (RFC 7636, 43 characters)."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def derive_proof_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a verifier: base64url(sha256(verifier)), unpadded."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_fingerprint(token: str) -> str:
    """Short, non-reversible tag for a token, safe to put in logs."""
    return hash_token(token)[:12]
