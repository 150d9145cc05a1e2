"""PKCE (RFC 7636) helpers for the S256 method."""

import base64
import hashlib
import secrets


def create_code_verifier() -> str:
    """Random verifier of 86 URL-safe characters (RFC range is 43–128)."""
    return secrets.token_urlsafe(64)


def create_code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
