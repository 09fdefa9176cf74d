"""
Pytest configuration and fixtures for backend tests.
"""

import os

# The app module builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import itertools
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base, Category, Dish, Restaurant, Table, TableSession, User
from shared.config.constants import Roles, SessionStatus
from shared.infrastructure.db import get_db
from shared.infrastructure.events import domain_publishers
from shared.security.auth import sign_table_token, sign_user_token
from shared.security.password import hash_password
from shared.security.rate_limit import limiter


# Explicit ids for seeded rows so tests can refer to them
_id_counter = itertools.count(1000)


def next_id():
    """Generate a unique ID for seeded test entities."""
    return next(_id_counter)


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """slowapi keeps counters in memory across tests."""
    limiter.reset()
    yield


@pytest.fixture(autouse=True)
def published(monkeypatch):
    """
    Capture row-change events instead of publishing them to Redis.

    Each scheduled batch is appended as a list of ChangeEvent.
    """
    batches = []

    async def fake_publish(events):
        batches.append(events)

    monkeypatch.setattr(domain_publishers, "publish_changes_bg", fake_publish)
    return batches


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Seed data
# =============================================================================


@pytest.fixture
def seed_restaurant(db_session):
    """Active restaurant without cover charge or AYCE."""
    restaurant = Restaurant(
        id=1,
        name="Trattoria Test",
        address="Via Roma 1",
        is_active=True,
        cover_charge_per_person=Decimal("0"),
        all_you_can_eat=False,
        ayce_price=Decimal("0"),
        ayce_max_orders=0,
    )
    db_session.add(restaurant)
    db_session.commit()
    db_session.refresh(restaurant)
    return restaurant


@pytest.fixture
def other_restaurant(db_session):
    restaurant = Restaurant(id=2, name="Other Place", is_active=True)
    db_session.add(restaurant)
    db_session.commit()
    db_session.refresh(restaurant)
    return restaurant


def _user(db_session, email, password, role, restaurant_id):
    user = User(
        id=next_id(),
        email=email,
        name=email.split("@")[0].title(),
        password_hash=hash_password(password),
        role=role,
        restaurant_id=restaurant_id,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def seed_admin_user(db_session):
    return _user(db_session, "admin@test.com", "adminpass123", Roles.ADMIN, None)


@pytest.fixture
def seed_owner_user(db_session, seed_restaurant):
    owner = _user(db_session, "owner@test.com", "ownerpass123", Roles.OWNER, seed_restaurant.id)
    seed_restaurant.owner_id = owner.id
    db_session.commit()
    return owner


@pytest.fixture
def seed_staff_user(db_session, seed_restaurant):
    return _user(db_session, "waiter@test.com", "waiter12345", Roles.STAFF, seed_restaurant.id)


@pytest.fixture
def admin_headers(seed_admin_user):
    return {"Authorization": f"Bearer {sign_user_token(seed_admin_user)}"}


@pytest.fixture
def owner_headers(seed_owner_user):
    return {"Authorization": f"Bearer {sign_user_token(seed_owner_user)}"}


@pytest.fixture
def staff_headers(seed_staff_user):
    return {"Authorization": f"Bearer {sign_user_token(seed_staff_user)}"}


@pytest.fixture
def seed_category(db_session, seed_restaurant):
    category = Category(id=next_id(), restaurant_id=seed_restaurant.id, name="Primi", order=1)
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def seed_dishes(db_session, seed_restaurant, seed_category):
    """Two active dishes and one inactive dish."""
    dishes = [
        Dish(
            id=next_id(),
            restaurant_id=seed_restaurant.id,
            category_id=seed_category.id,
            name="Carbonara",
            price=Decimal("12.50"),
            is_active=True,
        ),
        Dish(
            id=next_id(),
            restaurant_id=seed_restaurant.id,
            category_id=seed_category.id,
            name="Tiramisu",
            price=Decimal("6.00"),
            is_active=True,
        ),
        Dish(
            id=next_id(),
            restaurant_id=seed_restaurant.id,
            category_id=None,
            name="Off Menu",
            price=Decimal("9.00"),
            is_active=False,
        ),
    ]
    db_session.add_all(dishes)
    db_session.commit()
    for dish in dishes:
        db_session.refresh(dish)
    return dishes


@pytest.fixture
def seed_table(db_session, seed_restaurant):
    table = Table(id=next_id(), restaurant_id=seed_restaurant.id, number="7", seats=4, is_active=True)
    db_session.add(table)
    db_session.commit()
    db_session.refresh(table)
    return table


@pytest.fixture
def open_session(db_session, seed_table):
    """OPEN session on seed_table with PIN 1234 and two guests."""
    session = TableSession(
        id=next_id(),
        restaurant_id=seed_table.restaurant_id,
        table_id=seed_table.id,
        status=SessionStatus.OPEN,
        customer_count=2,
        session_pin="1234",
        coperto_enabled=False,
        ayce_enabled=False,
    )
    db_session.add(session)
    db_session.commit()
    db_session.refresh(session)
    return session


@pytest.fixture
def table_headers(open_session):
    token = sign_table_token(open_session.restaurant_id, open_session.table_id, open_session.id)
    return {"X-Table-Token": token}
