"""Test fixtures — in-memory accounts for the service and HTTP layers,
plus isolated Postgres sessions for the SQL repository.

Learn: Most tests never touch a database. The app exposes one storage
seam (get_account_repository), and the `client` fixture overrides it
with InMemoryAccountRepository, and overrides the social verifier with
a fake that accepts pre-registered tokens.

The SQL repository tests use the savepoint pattern for async
SQLAlchemy + asyncpg:

1. Each test gets its own engine + connection + transaction (function-scoped)
2. The session uses join_transaction_mode="create_savepoint" so that
   when the repository calls commit(), it creates a SAVEPOINT, not a real commit.
3. After the test, we rollback the outer transaction — all test data vanishes.

If Postgres isn't reachable those tests are skipped.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from bday.auth.dependencies import get_account_repository, get_social_verifier
from bday.auth.tokens import TokenSettings, TokenSigner
from bday.config import Settings
from bday.db.models import Base
from bday.main import create_app
from bday.services.auth_service import AuthService
from tests.fakes import FakeSocialVerifier, InMemoryAccountRepository

TEST_JWT_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


@pytest.fixture()
def settings() -> Settings:
    # bcrypt's minimum work factor keeps hashing fast in tests.
    return Settings(
        jwt_secret=TEST_JWT_SECRET,
        bcrypt_rounds=4,
        google_client_id="test-google-client",
        apple_client_id="com.example.bday",
    )


@pytest.fixture()
def repo() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture()
def social() -> FakeSocialVerifier:
    return FakeSocialVerifier()


@pytest.fixture()
def signer(settings) -> TokenSigner:
    return TokenSigner(TokenSettings.from_settings(settings))


@pytest.fixture()
def auth_service(repo, signer, social, settings) -> AuthService:
    return AuthService(repo, signer, social, bcrypt_rounds=settings.bcrypt_rounds)


@pytest.fixture()
def app(settings, repo, social):
    """App wired to the in-memory repository and fake social verifier."""
    app = create_app(settings)
    app.dependency_overrides[get_account_repository] = lambda: repo
    app.dependency_overrides[get_social_verifier] = lambda: social
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def db_session(settings):
    """Per-test Postgres session with automatic rollback via savepoints.

    Creates a fresh engine+connection+transaction per test. Tables are
    created inside the outer transaction, so they roll back too.
    """
    engine = create_async_engine(
        settings.database_url, echo=False, connect_args={"timeout": 2}
    )
    try:
        conn = await engine.connect()
    except Exception as e:
        await engine.dispose()
        pytest.skip(f"Postgres not available: {type(e).__name__}")

    trans = await conn.begin()
    await conn.run_sync(Base.metadata.create_all)
    session = AsyncSession(
        bind=conn,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        await session.close()
        await trans.rollback()
        await conn.close()
        await engine.dispose()
