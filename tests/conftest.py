import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from stocksage.core.database import init_db
from stocksage.core.security import create_access_token, get_password_hash
from stocksage.main import app
from stocksage.models.product import Product
from stocksage.models.user import User

PASSWORD = "secret123"


@pytest.fixture
async def db():
    """A fresh in-memory database per test."""
    client = AsyncMongoMockClient()
    await init_db(client)
    yield client


async def _make_user(email: str) -> User:
    user = User(
        name="Shop Owner",
        email=email,
        hashed_password=get_password_hash(PASSWORD),
        shop_name="Corner Store",
        phone="5550100",
        address="12 High Street",
    )
    await user.insert()
    return user


@pytest.fixture
async def owner(db) -> User:
    return await _make_user("owner@example.com")


@pytest.fixture
async def other_owner(db) -> User:
    return await _make_user("rival@example.com")


@pytest.fixture
async def make_product(db):
    async def _make(owner: User, **overrides) -> Product:
        data = {
            "name": "Green Tea",
            "category": "Beverages",
            "price": 100.0,
            "cost_price": 80.0,
            "quantity": 10,
            "min_stock_level": 2,
        }
        data.update(overrides)
        product = Product(**data, owner_id=owner.id)
        await product.insert()
        return product

    return _make


@pytest.fixture
async def client(db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def auth_headers(owner):
    token = create_access_token(data={"sub": str(owner.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def other_headers(other_owner):
    token = create_access_token(data={"sub": str(other_owner.id)})
    return {"Authorization": f"Bearer {token}"}
