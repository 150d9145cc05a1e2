"""Keycloak identity provider — implements the IdentityProvider interface.

Speaks OpenID Connect to a Keycloak realm with httpx, following the
contract of the keycloak-js SDK:

* ``init`` finishes a pending authorization-code callback found in the
  current URL, or silently checks for an existing session by redeeming
  the remembered refresh token.
* ``login`` starts the PKCE (S256) authorization-code flow by navigating
  to the realm's authorization endpoint.
* ``update_token`` refreshes the access token when it is about to expire.
"""

import base64
import json
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from admin_core.application.interfaces.client_environment import ClientEnvironment
from admin_core.application.interfaces.identity_provider import IdentityProvider
from admin_core.domain.exceptions import IdentityProviderError
from admin_core.infrastructure.keycloak.pkce import create_code_challenge, create_code_verifier

logger = logging.getLogger(__name__)

REFRESH_TOKEN_KEY = "kc-refresh-token"
CALLBACK_KEY_PREFIX = "kc-callback-"
CALLBACK_PARAMS = frozenset({
    "state", "code", "session_state", "iss", "error", "error_description", "error_uri",
})


@dataclass
class TokenSet:
    """Tokens issued by the realm's token endpoint."""

    access_token: str
    expires_at: float
    refresh_token: str | None = None
    id_token: str | None = None


def decode_claims(token: str) -> dict[str, Any]:
    """Decode a JWT payload without verifying it; {} if it is not a JWT."""
    parts = token.split(".")
    if len(parts) < 2:
        return {}
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(segment))
    except ValueError:
        return {}
    return claims if isinstance(claims, dict) else {}


def _strip_callback(url: str) -> str:
    """``url`` without the authorization-response parameters in its query and fragment."""
    parts = urlsplit(url)

    def keep(raw: str) -> str:
        pairs = parse_qsl(raw, keep_blank_values=True)
        return urlencode([(key, value) for key, value in pairs if key not in CALLBACK_PARAMS])

    return urlunsplit((parts.scheme, parts.netloc, parts.path, keep(parts.query), keep(parts.fragment)))


class KeycloakIdentityProvider(IdentityProvider):
    """Infrastructure adapter — connects to a Keycloak realm over OIDC."""

    def __init__(
        self,
        url: str,
        realm: str,
        client_id: str,
        environment: ClientEnvironment,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        self._realm_url = f"{url.rstrip('/')}/realms/{realm}"
        self._client_id = client_id
        self._environment = environment
        self._http_client = http_client
        self._timeout = timeout
        self._clock = clock
        self._tokens: TokenSet | None = None

    # ── Endpoints ───────────────────────────────────────────────────

    @property
    def authorization_endpoint(self) -> str:
        return f"{self._realm_url}/protocol/openid-connect/auth"

    @property
    def token_endpoint(self) -> str:
        return f"{self._realm_url}/protocol/openid-connect/token"

    @property
    def logout_endpoint(self) -> str:
        return f"{self._realm_url}/protocol/openid-connect/logout"

    @property
    def account_endpoint(self) -> str:
        return f"{self._realm_url}/account"

    # ── IdentityProvider ────────────────────────────────────────────

    @property
    def token(self) -> str | None:
        return self._tokens.access_token if self._tokens else None

    async def init(self) -> bool:
        current_url = self._environment.current_url
        callback = self._parse_callback(current_url)
        if callback is not None:
            self._environment.visit(_strip_callback(current_url))
            if await self._complete_login(callback):
                return True

        refresh_token = self._environment.local_storage.get(REFRESH_TOKEN_KEY)
        if not refresh_token:
            logger.info("No remembered Keycloak session")
            return False

        try:
            await self._refresh(refresh_token)
        except IdentityProviderError as exc:
            # invalid_grant: the realm session is gone, not an outage
            if exc.status_code in (400, 401):
                logger.info("Remembered Keycloak session expired: %s", exc.message)
                self._forget_tokens()
                return False
            raise
        return True

    async def load_user_profile(self) -> dict[str, Any]:
        if self._tokens is None:
            raise IdentityProviderError("Cannot load a profile without a token")

        client = await self._get_client()
        should_close = self._http_client is None
        try:
            response = await client.get(
                self.account_endpoint,
                headers={
                    "Accept": "application/json",
                    "Authorization": f"Bearer {self._tokens.access_token}",
                },
            )
        finally:
            if should_close:
                await client.aclose()

        if not response.is_success:
            raise IdentityProviderError(
                f"Failed to load user profile (status {response.status_code})",
                status_code=response.status_code,
            )
        return response.json()

    def create_login_url(self, *, redirect_uri: str) -> str:
        """Build the authorization URL and remember the PKCE verifier for the callback."""
        state = secrets.token_urlsafe(16)
        nonce = secrets.token_urlsafe(16)
        verifier = create_code_verifier()
        self._environment.session_storage[CALLBACK_KEY_PREFIX + state] = json.dumps(
            {"verifier": verifier, "nonce": nonce, "redirect_uri": redirect_uri}
        )
        query = urlencode({
            "client_id": self._client_id,
            "redirect_uri": redirect_uri,
            "state": state,
            "nonce": nonce,
            "response_type": "code",
            "response_mode": "query",
            "scope": "openid",
            "code_challenge": create_code_challenge(verifier),
            "code_challenge_method": "S256",
        })
        return f"{self.authorization_endpoint}?{query}"

    async def login(self, *, redirect_uri: str) -> None:
        self._environment.navigate(self.create_login_url(redirect_uri=redirect_uri))

    async def logout(self, *, redirect_uri: str) -> None:
        params = {"client_id": self._client_id, "post_logout_redirect_uri": redirect_uri}
        if self._tokens and self._tokens.id_token:
            params["id_token_hint"] = self._tokens.id_token
        self._forget_tokens()
        self._environment.navigate(f"{self.logout_endpoint}?{urlencode(params)}")

    def is_token_expired(self, min_validity: int = 0) -> bool:
        if self._tokens is None:
            return True
        return self._tokens.expires_at - min_validity <= self._clock()

    async def update_token(self, min_validity: int) -> bool:
        if self._tokens is None or not self._tokens.refresh_token:
            raise IdentityProviderError("No refresh token available")
        if not self.is_token_expired(min_validity):
            return False
        await self._refresh(self._tokens.refresh_token)
        return True

    # ── Internals ───────────────────────────────────────────────────

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self._timeout)

    @staticmethod
    def _parse_callback(url: str) -> dict[str, str] | None:
        """Callback parameters from the query or fragment, if this is a login callback."""
        parts = urlsplit(url)
        for raw in (parts.query, parts.fragment):
            params = dict(parse_qsl(raw))
            if "state" in params and ("code" in params or "error" in params):
                return params
        return None

    async def _complete_login(self, callback: dict[str, str]) -> bool:
        """Redeem a login callback; False when its state was not issued by this client."""
        stored = self._environment.session_storage.pop(CALLBACK_KEY_PREFIX + callback["state"], None)
        if stored is None:
            logger.warning("Ignoring login callback with unknown state")
            return False
        if "error" in callback:
            raise IdentityProviderError(
                f"Login failed: {callback.get('error_description') or callback['error']}"
            )

        pending = json.loads(stored)
        await self._token_request({
            "grant_type": "authorization_code",
            "code": callback["code"],
            "client_id": self._client_id,
            "redirect_uri": pending["redirect_uri"],
            "code_verifier": pending["verifier"],
        })
        logger.info("Keycloak login callback completed")
        return True

    async def _refresh(self, refresh_token: str) -> None:
        await self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self._client_id,
        })

    async def _token_request(self, form: dict[str, str]) -> None:
        client = await self._get_client()
        should_close = self._http_client is None
        try:
            response = await client.post(self.token_endpoint, data=form)
        finally:
            if should_close:
                await client.aclose()

        if not response.is_success:
            try:
                body = response.json()
                message = body.get("error_description") or body.get("error") or response.text
            except ValueError:
                message = response.text
            raise IdentityProviderError(
                f"Token request failed: {message or response.status_code}",
                status_code=response.status_code,
            )

        self._store_tokens(response.json())

    def _store_tokens(self, data: dict[str, Any]) -> None:
        access_token = data.get("access_token")
        if not access_token:
            raise IdentityProviderError("Token response carries no access_token")

        expires_at = decode_claims(access_token).get("exp")
        if not isinstance(expires_at, (int, float)):
            expires_at = self._clock() + float(data.get("expires_in", 0))

        self._tokens = TokenSet(
            access_token=access_token,
            expires_at=float(expires_at),
            refresh_token=data.get("refresh_token"),
            id_token=data.get("id_token"),
        )
        if self._tokens.refresh_token:
            self._environment.local_storage[REFRESH_TOKEN_KEY] = self._tokens.refresh_token

    def _forget_tokens(self) -> None:
        self._tokens = None
        self._environment.local_storage.pop(REFRESH_TOKEN_KEY, None)
