"""
Pytest configuration and fixtures.

Each test gets its own in-memory SQLite database (aiosqlite) with the schema
created from the models, a scratch shop cache directory and an HTTP client
whose database dependency points at the test session.
"""
import os

# Must be set before any dshop module reads the settings
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

from datetime import datetime, timezone
from typing import Optional

import bcrypt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dshop.core.config import get_settings
from dshop.core.db import Base, get_session
from dshop.encrypted_config import encrypt_config
from dshop.models import Network, Seller, SellerShop, Shop
from dshop.rate_limiter import clear_rate_limits


def hash_for_tests(plain: str) -> str:
    """Cheap bcrypt hash (low cost factor) for seeding sellers."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest.fixture(autouse=True)
def cache_dir(tmp_path, monkeypatch):
    """Point DSHOP_CACHE at a scratch directory and reset cached settings."""
    path = tmp_path / "dshop-cache"
    path.mkdir()
    monkeypatch.setenv("DSHOP_CACHE", str(path))
    get_settings.cache_clear()
    clear_rate_limits()
    yield path
    get_settings.cache_clear()


@pytest.fixture(scope="function")
async def async_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def async_session(async_engine):
    session_maker = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture(scope="function")
async def client(async_session):
    """AsyncClient bound to the app with the database dependency overridden."""
    from dshop.main import app

    async def override_get_session():
        yield async_session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ────────────────────────────────────────────────────────────────
# Seed helpers
# ────────────────────────────────────────────────────────────────

async def add_seller(
    session: AsyncSession,
    email: str,
    password: str = "pw",
    superuser: bool = False,
    name: str = "Seller",
) -> Seller:
    seller = Seller(name=name, email=email, password=hash_for_tests(password), superuser=superuser)
    session.add(seller)
    await session.commit()
    return seller


async def add_shop(
    session: AsyncSession,
    name: str,
    auth_token: str,
    hostname: Optional[str] = None,
    config: Optional[dict] = None,
    created_at: Optional[datetime] = None,
) -> Shop:
    shop = Shop(
        name=name,
        auth_token=auth_token,
        hostname=hostname,
        config=encrypt_config(config) if config is not None else None,
    )
    if created_at is not None:
        shop.created_at = created_at
    session.add(shop)
    await session.commit()
    return shop


async def link(session: AsyncSession, seller: Seller, shop: Shop, role: str) -> SellerShop:
    seller_shop = SellerShop(seller_id=seller.id, shop_id=shop.id, role=role)
    session.add(seller_shop)
    await session.commit()
    return seller_shop


async def add_network(
    session: AsyncSession,
    network_id: int,
    active: bool = False,
    config: Optional[dict] = None,
    **columns,
) -> Network:
    network = Network(
        network_id=network_id,
        active=active,
        config=encrypt_config(config) if config is not None else None,
        **columns,
    )
    session.add(network)
    await session.commit()
    return network


def bearer(shop: Shop) -> dict:
    return {"Authorization": f"Bearer {shop.auth_token}"}


def utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


# ────────────────────────────────────────────────────────────────
# Common fixtures
# ────────────────────────────────────────────────────────────────

@pytest.fixture
async def superuser(async_session) -> Seller:
    return await add_seller(async_session, "root@shop.com", password="rootpw", superuser=True)


@pytest.fixture
async def seller(async_session) -> Seller:
    return await add_seller(async_session, "seller@shop.com", password="sellerpw")


@pytest.fixture
async def shop(async_session) -> Shop:
    return await add_shop(
        async_session,
        "Alpha Store",
        "alpha-token",
        hostname="alpha",
        config={"email": "alpha@shop.com"},
    )


@pytest.fixture
async def other_shop(async_session) -> Shop:
    return await add_shop(async_session, "Beta Store", "beta-token", hostname="beta")
