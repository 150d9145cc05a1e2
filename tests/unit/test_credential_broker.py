"""Unit tests for the CredentialBroker session lifecycle."""

import asyncio
from typing import Any

import httpx
import pytest

from admin_core.application.interfaces import IdentityProvider
from admin_core.application.services import CredentialBroker, SessionContext
from admin_core.domain.entities import SessionStatus
from admin_core.domain.exceptions import IdentityProviderError
from admin_core.infrastructure.environment import LocalClientEnvironment
from admin_core.infrastructure.http import ResponseInterceptors

REALM_URL = "https://auth.example.com/realms/test"


class FakeIdentityProvider(IdentityProvider):
    """Scripted identity provider that talks to a mock realm over httpx."""

    def __init__(self, http_client: httpx.AsyncClient):
        self._http_client = http_client
        self._token: str | None = None
        self.session_exists = True
        self.issued_token = "token-1"
        self.profile: dict[str, Any] = {"username": "alice", "email": "alice@example.com"}
        self.init_error: Exception | None = None
        self.refresh_result: bool | Exception = False
        self.init_calls = 0
        self.login_calls: list[str] = []
        self.logout_calls: list[str] = []
        self.init_gate: asyncio.Event | None = None
        self.remembered: dict[str, str] | None = None

    @property
    def token(self) -> str | None:
        return self._token

    async def init(self) -> bool:
        self.init_calls += 1
        if self.init_gate is not None:
            await self.init_gate.wait()
        if self.init_error is not None:
            raise self.init_error
        await self._http_client.get(f"{REALM_URL}/protocol/openid-connect/3p-cookies/step1.html")
        if self.session_exists:
            self._token = self.issued_token
            if self.remembered is not None:
                self.remembered["kc-refresh-token"] = "refresh-1"
        return self.session_exists

    async def load_user_profile(self) -> dict[str, Any]:
        return dict(self.profile)

    async def login(self, *, redirect_uri: str) -> None:
        self.login_calls.append(redirect_uri)
        await self._http_client.get(f"{REALM_URL}/protocol/openid-connect/auth")

    async def logout(self, *, redirect_uri: str) -> None:
        self.logout_calls.append(redirect_uri)
        self._token = None

    async def update_token(self, min_validity: int) -> bool:
        if isinstance(self.refresh_result, Exception):
            raise self.refresh_result
        if self.refresh_result:
            self._token = "token-2"
        return self.refresh_result


class Realm:
    """Mock realm transport; answers every request with ``status_code``."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text="ok")


class Harness:
    def __init__(self, realm_status: int = 200, reload_delay: float = 0.0):
        self.realm = Realm(realm_status)
        self.interceptors = ResponseInterceptors()
        self.environment = LocalClientEnvironment("https://app.example.com")
        self.http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(self.realm),
            event_hooks={"response": [self.interceptors]},
        )
        self.context = SessionContext()
        self.providers: list[FakeIdentityProvider] = []
        self.reload_delay = reload_delay

    def provider_factory(self) -> FakeIdentityProvider:
        provider = FakeIdentityProvider(self.http_client)
        self.providers.append(provider)
        return provider

    @property
    def provider(self) -> FakeIdentityProvider:
        return self.providers[-1]

    def broker(self) -> CredentialBroker:
        return CredentialBroker(
            self.context,
            self.provider_factory,
            self.environment,
            self.interceptors,
            redirect_uri="https://app.example.com/dashboard",
            token_min_validity=30,
            reload_delay=self.reload_delay,
        )

    def seed_client_state(self) -> None:
        self.environment.cookies.set("KEYCLOAK_SESSION", "poisoned", domain="app.example.com")
        self.environment.cookies.set("AUTH_SESSION_ID", "poisoned", domain=".example.com")
        self.environment.local_storage["kc-refresh-token"] = "stale"
        self.environment.session_storage["kc-callback-x"] = "{}"


@pytest.fixture
def harness() -> Harness:
    return Harness()


async def _until(condition, attempts: int = 50) -> None:
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


# ── initialize ──


@pytest.mark.asyncio
async def test_initialize_authenticated(harness: Harness):
    broker = harness.broker()

    status = await broker.initialize()

    assert status is SessionStatus.AUTHENTICATED
    assert harness.context.is_authenticated is True
    assert broker.current_token() == "token-1"
    assert broker.current_profile() == {"username": "alice", "email": "alice@example.com"}
    assert broker.auth_header() == {"Authorization": "Bearer token-1"}
    assert harness.context.initialized is True
    assert len(harness.interceptors) == 0


@pytest.mark.asyncio
async def test_initialize_anonymous(harness: Harness):
    broker = harness.broker()
    harness.context.provider(harness.provider_factory).session_exists = False

    status = await broker.initialize()

    assert status is SessionStatus.ANONYMOUS
    assert broker.current_token() is None
    assert broker.current_profile() is None
    assert broker.auth_header() == {}


@pytest.mark.asyncio
async def test_concurrent_initialize_runs_one_handshake(harness: Harness):
    broker = harness.broker()
    provider = harness.context.provider(harness.provider_factory)
    provider.init_gate = asyncio.Event()

    first = asyncio.create_task(broker.initialize())
    second = asyncio.create_task(broker.initialize())
    await asyncio.sleep(0)
    provider.init_gate.set()
    results = await asyncio.gather(first, second)

    assert results == [SessionStatus.AUTHENTICATED, SessionStatus.AUTHENTICATED]
    assert provider.init_calls == 1
    assert len(harness.providers) == 1


@pytest.mark.asyncio
async def test_rebuilt_broker_reuses_process_session(harness: Harness):
    await harness.broker().initialize()

    status = await harness.broker().initialize()

    assert status is SessionStatus.AUTHENTICATED
    assert harness.provider.init_calls == 1
    assert len(harness.providers) == 1


@pytest.mark.asyncio
async def test_gateway_response_during_handshake_purges_and_reloads():
    harness = Harness(realm_status=502)
    harness.seed_client_state()
    authenticated_calls: list[Any] = []
    harness.context.session.mark_authenticated = lambda *args: authenticated_calls.append(args)
    broker = harness.broker()

    status = await broker.initialize()

    assert status is SessionStatus.UNINITIALIZED
    assert authenticated_calls == []
    assert harness.environment.cookie_names() == []
    assert dict(harness.environment.local_storage) == {}
    assert dict(harness.environment.session_storage) == {}
    assert harness.context.initialized is False
    assert harness.context.has_provider is False
    assert broker.reload_scheduled is True

    await asyncio.sleep(0.01)
    assert harness.environment.reload_count == 1


@pytest.mark.asyncio
async def test_gateway_error_message_during_handshake_is_recovered(harness: Harness):
    harness.seed_client_state()
    broker = harness.broker()
    provider = harness.context.provider(harness.provider_factory)
    provider.init_error = IdentityProviderError("502 Bad Gateway")

    status = await broker.initialize()

    assert status is SessionStatus.UNINITIALIZED
    assert harness.environment.cookie_names() == []
    assert broker.reload_scheduled is True


@pytest.mark.asyncio
async def test_other_handshake_failure_records_error_and_allows_retry(harness: Harness):
    broker = harness.broker()
    provider = harness.context.provider(harness.provider_factory)
    provider.init_error = IdentityProviderError("Realm does not exist", 404)

    with pytest.raises(IdentityProviderError):
        await broker.initialize()

    assert harness.context.status is SessionStatus.ERROR
    assert harness.context.error == "Realm does not exist"
    assert harness.context.initialized is False
    assert broker.reload_scheduled is False

    provider.init_error = None
    assert await broker.initialize() is SessionStatus.AUTHENTICATED
    assert provider.init_calls == 2


@pytest.mark.asyncio
async def test_authenticated_without_token_is_an_error(harness: Harness):
    broker = harness.broker()
    provider = harness.context.provider(harness.provider_factory)
    provider.issued_token = ""

    with pytest.raises(IdentityProviderError):
        await broker.initialize()

    assert harness.context.status is SessionStatus.ERROR
    assert harness.context.token is None


# ── refresh ──


@pytest.mark.asyncio
async def test_refresh_stores_new_token(harness: Harness):
    broker = harness.broker()
    await broker.initialize()
    harness.provider.refresh_result = True

    assert await broker.refresh() is True
    assert broker.current_token() == "token-2"
    assert harness.context.is_authenticated is True


@pytest.mark.asyncio
async def test_refresh_not_needed_keeps_token(harness: Harness):
    broker = harness.broker()
    await broker.initialize()

    assert await broker.refresh() is False
    assert broker.current_token() == "token-1"
    assert harness.context.is_authenticated is True


@pytest.mark.asyncio
async def test_refresh_failure_clears_session(harness: Harness):
    broker = harness.broker()
    await broker.initialize()
    harness.provider.refresh_result = IdentityProviderError("Token is not active", 400)

    assert await broker.refresh() is False
    assert harness.context.status is SessionStatus.ANONYMOUS
    assert broker.current_token() is None
    assert broker.current_profile() is None


@pytest.mark.asyncio
async def test_refresh_when_anonymous_does_nothing(harness: Harness):
    broker = harness.broker()
    harness.context.provider(harness.provider_factory).session_exists = False
    await broker.initialize()
    harness.provider.refresh_result = True

    assert await broker.refresh() is False
    assert broker.current_token() is None


@pytest.mark.asyncio
async def test_handle_token_expired_falls_back_to_login(harness: Harness):
    broker = harness.broker()
    await broker.initialize()
    harness.provider.refresh_result = IdentityProviderError("Session not active", 400)

    await broker.handle_token_expired()

    assert harness.provider.login_calls == ["https://app.example.com/dashboard"]


@pytest.mark.asyncio
async def test_handle_token_expired_refreshes_silently(harness: Harness):
    broker = harness.broker()
    await broker.initialize()
    harness.provider.refresh_result = True

    await broker.handle_token_expired()

    assert harness.provider.login_calls == []
    assert broker.current_token() == "token-2"


# ── login / logout / force_clear ──


@pytest.mark.asyncio
async def test_login_gateway_failure_recovers():
    harness = Harness(realm_status=502)
    harness.seed_client_state()
    broker = harness.broker()

    await broker.login()

    assert harness.provider.login_calls == ["https://app.example.com/dashboard"]
    assert harness.environment.cookie_names() == []
    assert broker.reload_scheduled is True
    assert len(harness.interceptors) == 0


@pytest.mark.asyncio
async def test_logout_marks_anonymous(harness: Harness):
    broker = harness.broker()
    await broker.initialize()

    await broker.logout()

    assert harness.provider.logout_calls == ["https://app.example.com/dashboard"]
    assert harness.context.status is SessionStatus.ANONYMOUS
    assert broker.current_token() is None


@pytest.mark.asyncio
async def test_force_clear_purges_and_resets(harness: Harness):
    broker = harness.broker()
    await broker.initialize()
    harness.seed_client_state()

    broker.force_clear()

    assert harness.environment.cookie_names() == []
    assert dict(harness.environment.local_storage) == {}
    assert harness.context.status is SessionStatus.UNINITIALIZED
    assert harness.context.initialized is False
    assert harness.context.has_provider is False
    assert broker.reload_scheduled is False

    # The next initialize runs a fresh handshake with a new provider handle.
    assert await broker.initialize() is SessionStatus.AUTHENTICATED
    assert len(harness.providers) == 2


@pytest.mark.asyncio
async def test_force_clear_during_handshake_discards_its_outcome(harness: Harness):
    broker = harness.broker()
    provider = harness.context.provider(harness.provider_factory)
    provider.init_gate = asyncio.Event()
    provider.remembered = harness.environment.local_storage

    pending = asyncio.create_task(broker.initialize())
    await _until(lambda: provider.init_calls == 1)
    broker.force_clear()
    provider.init_gate.set()
    status = await pending

    assert status is SessionStatus.UNINITIALIZED
    assert harness.context.status is SessionStatus.UNINITIALIZED
    assert harness.context.initialized is False
    assert broker.current_token() is None
    assert dict(harness.environment.local_storage) == {}

    # The next initialize runs its own handshake instead of trusting the stale one.
    assert await broker.initialize() is SessionStatus.AUTHENTICATED
    assert len(harness.providers) == 2
    assert harness.providers[-1].init_calls == 1


@pytest.mark.asyncio
async def test_stale_handshake_does_not_clobber_the_next_one(harness: Harness):
    broker = harness.broker()
    stale = harness.context.provider(harness.provider_factory)
    stale.init_gate = asyncio.Event()

    first = asyncio.create_task(broker.initialize())
    await _until(lambda: stale.init_calls == 1)
    broker.force_clear()

    assert await broker.initialize() is SessionStatus.AUTHENTICATED
    stale.init_gate.set()
    await first

    assert harness.context.status is SessionStatus.AUTHENTICATED
    assert harness.context.initialized is True
    assert harness.context.pending_initialization is None
