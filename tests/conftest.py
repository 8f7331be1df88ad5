"""Test configuration and fixtures"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.database import Base, get_db
from app.jobs.celery_app import celery_app
from app.models import Menu, Restaurant, User
from app.api.auth import create_access_token, get_password_hash
from app.store import StoreClient, build_model_meta


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"

# Notifications run inline instead of going through the broker
celery_app.conf.task_always_eager = True


def auth_headers(user: User) -> dict:
    """Bearer header for ``user``"""
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def headers_for():
    """Build bearer headers for any user"""
    return auth_headers


@pytest.fixture
async def test_db():
    """Create test database"""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="session")
def model_meta():
    return build_model_meta()


@pytest.fixture
async def owner(test_db):
    """Owner of the tenant's restaurant"""
    user = User(
        id="u-owner",
        tenant_id=TENANT,
        email="owner@example.com",
        hashed_password=get_password_hash("ownerpass123"),
        first_name="Olivia",
        last_name="Owner",
        phone="+15550000001",
        roles=["Owner"],
    )
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def guest(test_db):
    """Customer without a tenant"""
    user = User(
        id="u-guest",
        email="guest@example.com",
        hashed_password=get_password_hash("guestpass123"),
        first_name="Gus",
        last_name="Guest",
        roles=["Guest"],
    )
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def other_owner(test_db):
    """Owner in a different tenant"""
    user = User(
        id="u-other",
        tenant_id=OTHER_TENANT,
        email="other@example.com",
        hashed_password=get_password_hash("otherpass123"),
        roles=["Owner"],
    )
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def restaurant(test_db, owner):
    restaurant = Restaurant(
        id="r1",
        name="Test Trattoria",
        address="123 Test St",
        opening_hours="11:00",
        closing_hours="22:00",
        user_id=owner.id,
        tenant_id=TENANT,
    )
    test_db.add(restaurant)
    await test_db.commit()
    return restaurant


@pytest.fixture
async def other_restaurant(test_db, other_owner):
    restaurant = Restaurant(
        id="r2",
        name="Other Diner",
        user_id=other_owner.id,
        tenant_id=OTHER_TENANT,
    )
    test_db.add(restaurant)
    await test_db.commit()
    return restaurant


@pytest.fixture
async def menus(test_db, restaurant):
    """Create test menu items"""
    items = [
        Menu(id="m1", name="Margherita Pizza", description="Classic tomato and mozzarella",
             price=1499, category="Pizza", restaurant_id=restaurant.id),
        Menu(id="m2", name="Pepperoni Pizza", description="Pepperoni with mozzarella",
             price=1699, category="Pizza", restaurant_id=restaurant.id),
        Menu(id="m3", name="Caesar Salad", description="Romaine with caesar dressing",
             price=1099, category="Salads", restaurant_id=restaurant.id),
    ]
    test_db.add_all(items)
    await test_db.commit()
    return items


@pytest.fixture
def store(test_db, model_meta):
    """Store client without an access policy"""
    return StoreClient(test_db, model_meta)


@pytest.fixture
async def client(test_db):
    """Create test client with overridden database"""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def owner_client(client, owner):
    """Client authenticated as the tenant owner"""
    client.headers.update(auth_headers(owner))
    return client


@pytest.fixture
async def guest_client(client, guest):
    """Client authenticated as a guest"""
    client.headers.update(auth_headers(guest))
    return client
