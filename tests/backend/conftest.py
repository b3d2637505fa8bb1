import os
import uuid

TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from family_portal.api import deps
from family_portal.config import settings
from family_portal.core import db as db_module
from family_portal.core.rate_limit import RateLimiter
from family_portal.core.security import hash_password
from family_portal.main import app
from family_portal.models.user import User
from family_portal.services.accounts import CredentialManager
from family_portal.services.chat import ConversationGateway
from family_portal.services.completion import CompletionClient, CompletionResult, TokenUsage
from family_portal.services.invites import InviteLedger
from family_portal.services.usage import UsageMeter


db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


class FakeCompletionClient(CompletionClient):
    """
    Stand-in for the chat model: records every call and answers with a
    fixed reply, or raises `error` when one is set.
    """

    def __init__(self, reply: str = "Hi! How can I help?", usage: TokenUsage | None = None):
        self.reply = reply
        self.usage = usage or TokenUsage(prompt_tokens=12, completion_tokens=8, total_tokens=20)
        self.configured = True
        self.error: Exception | None = None
        self.calls: list[dict] = []

    def is_configured(self) -> bool:
        return self.configured

    async def complete(self, messages, model=None) -> CompletionResult:
        self.calls.append({"messages": messages, "model": model})
        if self.error:
            raise self.error
        return CompletionResult(text=self.reply, usage=self.usage, model=model or "fake-model")


class Portal:
    """
    Service graph wired to the app through dependency_overrides.
    `configure(**overrides)` rebuilds it with different settings.
    """

    def __init__(self, completion: FakeCompletionClient):
        self.completion = completion
        self.configure()

    def configure(self, **overrides) -> "Portal":
        self.config = settings.model_copy(update={"jwt_secret": "test-secret", **overrides})
        self.invites = InviteLedger(self.config)
        self.accounts = CredentialManager(self.config, self.invites)
        self.meter = UsageMeter(self.config)
        self.gateway = ConversationGateway(self.config, self.meter, self.completion)
        app.dependency_overrides[deps.get_invite_ledger] = lambda: self.invites
        app.dependency_overrides[deps.get_credential_manager] = lambda: self.accounts
        app.dependency_overrides[deps.get_usage_meter] = lambda: self.meter
        app.dependency_overrides[deps.get_conversation_gateway] = lambda: self.gateway
        return self


@pytest_asyncio.fixture
async def db():
    """Fresh database without the HTTP app, for service-level tests."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest.fixture
def fake_completion():
    return FakeCompletionClient()


@pytest.fixture
def portal(fake_completion):
    p = Portal(fake_completion)
    yield p
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(portal):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    The per-address limiter is replaced by a roomy one so it never interferes.
    """
    await _init_test_db()
    app.state.rate_limiter = RateLimiter(max_requests=10_000, window_seconds=60)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def register(client):
    """
    Factory fixture: register through the public endpoint and return the response.
    The session cookie is dropped so later requests authenticate explicitly.
    """

    async def _register(
        email: str | None = None,
        password: str = "Family#123",
        name: str = "Family Member",
        invite: str | None = None,
    ):
        email = email or f"{uuid.uuid4().hex[:8]}@example.com"
        resp = await client.post(
            "/api/auth/register",
            json={"email": email, "name": name, "password": password, "invite": invite},
        )
        client.cookies.clear()
        return resp

    return _register


def bearer(resp) -> dict[str, str]:
    """Authorization header from a register/login response."""
    token = resp.json()["data"]["accessToken"]
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def admin_headers(register):
    """The first registered account is the admin."""
    resp = await register(email="admin@example.com", name="Grandma")
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["user"]["role"] == "admin"
    return bearer(resp)


@pytest_asyncio.fixture
async def member_factory(client, admin_headers, portal):
    """
    Factory fixture: register a member account using a fresh invite.
    Returns (user dict, headers).
    """

    async def _member(email: str | None = None, password: str = "Member#123"):
        invite = await portal.invites.issue(note="test member")
        email = email or f"{uuid.uuid4().hex[:8]}@example.com"
        resp = await client.post(
            "/api/auth/register",
            json={"email": email, "name": "Member", "password": password, "invite": invite.code},
        )
        client.cookies.clear()
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]["user"], bearer(resp)

    return _member


@pytest_asyncio.fixture
async def make_user(db):
    """Factory fixture to create users directly via ORM."""

    async def _make_user(email: str | None = None, role: str = "member", password: str = "Secret#123") -> User:
        return await User.create(
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            name="Test User",
            password_hash=hash_password(password),
            role=role,
        )

    return _make_user
