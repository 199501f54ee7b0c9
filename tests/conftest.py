"""Pytest fixtures for storefront tests."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from storefront.database import get_session_factory
from storefront.domain.models import Product, User
from storefront.infrastructure.db_schema import metadata
from storefront.infrastructure.unit_of_work import UnitOfWork
from storefront.main import app


SHIPPING_ADDRESS = {
    "first_name": "Asha",
    "last_name": "Rao",
    "email": "asha@example.com",
    "phone": "+91 98765 43210",
    "address": "12 Lake Road",
    "city": "Pune",
    "state": "Maharashtra",
    "zip_code": "411001",
}


@pytest.fixture
def shipping_address():
    return dict(SHIPPING_ADDRESS)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """On-disk SQLite so concurrent sessions get separate connections."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def uow(session_factory):
    return UnitOfWork(session_factory)


@pytest.fixture
def make_product(uow):
    async def _make(name="Apples", price="100", stock=10, category="Fruits", description=""):
        now = datetime.now(timezone.utc)
        product = Product(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            price=Decimal(price),
            category=category,
            stock=stock,
            created_at=now,
            updated_at=now,
        )
        async with uow() as u:
            await u.products.create(product)
            await u.commit()
        return product

    return _make


@pytest.fixture
def make_user(uow):
    """Users get the API key ``token-<id>``."""

    async def _make(name="Asha Rao", email=None, is_admin=False, is_active=True):
        user_id = str(uuid.uuid4())
        user = User(
            id=user_id,
            name=name,
            email=email or f"{user_id[:8]}@example.com",
            is_admin=is_admin,
            is_active=is_active,
        )
        async with uow() as u:
            await u.users.create(user, f"token-{user_id}")
            await u.commit()
        return user

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"X-API-Key": f"token-{user.id}"}

    return _headers


@pytest.fixture
def stock_of(uow):
    async def _stock(product_id):
        async with uow() as u:
            product = await u.products.get_by_id(product_id)
        return product.stock

    return _stock


@pytest_asyncio.fixture
async def client(session_factory):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
