"""Test fixtures for the storefront domain service test suite."""

import os
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Set test environment variables BEFORE importing app modules
os.environ.update({
    "DATABASE_URL": "sqlite+aiosqlite:///./storefront_domains_test.db",
    "PLATFORM_DOMAIN_SUFFIX": "hauntplatform.com",
    "CNAME_TARGET": "cname.hauntplatform.com",
    "VERIFICATION_TOKEN_SECRET": "test-verification-secret",
    "DNS_VERIFICATION_BYPASS": "false",
    "VERIFY_COOLDOWN_SECONDS": "0",
    "SLUG_FALLBACK_WITH_CUSTOM_DOMAIN": "true",
    "ENVIRONMENT": "test",
    "LOG_LEVEL": "WARNING",
})

from storefront_domains import models  # noqa: E402,F401
from storefront_domains.database import Base, build_engine, get_session  # noqa: E402
from storefront_domains.dependencies import get_dns_verifier  # noqa: E402
from storefront_domains.exceptions import DNSRecordNotFound  # noqa: E402
from storefront_domains.main import create_app  # noqa: E402
from storefront_domains.models.tenant import Tenant  # noqa: E402
from storefront_domains.services.dns_verifier import DNSVerifier  # noqa: E402


class FakeDNSClient:
    """In-memory DNS client with fixed answers."""

    def __init__(self, txt=None, cname=None, error=None):
        self.txt: dict[str, list[str]] = dict(txt or {})
        self.cname: dict[str, list[str]] = dict(cname or {})
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def lookup_txt(self, host: str) -> list[str]:
        self.calls.append(("TXT", host))
        if self.error is not None:
            raise self.error
        if host not in self.txt:
            raise DNSRecordNotFound(host)
        return list(self.txt[host])

    async def lookup_cname(self, host: str) -> list[str]:
        self.calls.append(("CNAME", host))
        if self.error is not None:
            raise self.error
        if host not in self.cname:
            raise DNSRecordNotFound(host)
        return list(self.cname[host])


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'domains.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session that rolls back after each test."""
    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fake_dns() -> FakeDNSClient:
    """DNS client with no records configured."""
    return FakeDNSClient()


@pytest.fixture
def verifier(fake_dns: FakeDNSClient) -> DNSVerifier:
    """Verifier wired to the fake DNS client, bypass off."""
    return DNSVerifier(client=fake_dns, timeout=1.0, bypass=False)


@pytest.fixture
def make_tenant(db: AsyncSession):
    """Factory creating tenants."""

    async def _make(slug: str, name: str | None = None) -> Tenant:
        tenant = Tenant(slug=slug, name=name or slug.replace("-", " ").title())
        db.add(tenant)
        await db.flush()
        return tenant

    return _make


@pytest.fixture
async def client(db: AsyncSession, verifier: DNSVerifier) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with database and DNS overrides."""
    app = create_app()

    async def override_get_session():
        yield db

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_dns_verifier] = lambda: verifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
