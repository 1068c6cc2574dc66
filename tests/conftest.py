import os
import sys
from decimal import Decimal
from pathlib import Path

import pytest
import anyio
import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite:///" + str(BASE_DIR / "test.db"))
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "30")
os.environ.setdefault("SUPABASE_URL", "https://demo-project.supabase.co")
os.environ.setdefault("OAUTH_REDIRECT_URL", "http://localhost:5173/auth/callback")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("TAX_RATE", "0.0825")
os.environ.setdefault("DELIVERY_FEE", "3.99")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from pizzeria.core.cache import InMemoryCacheBackend, cache_manager
from pizzeria.core.config import get_settings
from pizzeria.core.dependencies import get_db
from pizzeria.core.security import create_access_token, create_password_hash
from pizzeria.models import (
    Base,
    Category,
    MenuItem,
    Reward,
    User,
    UserPoints,
    UserRole,
)
from pizzeria.main import app

get_settings.cache_clear()

_db_path = BASE_DIR / "test.db"


def _create_engine():
    settings = get_settings()
    connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
    return create_engine(settings.DATABASE_URL, connect_args=connect_args)


def _create_session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="session")
def engine():
    engine = _create_engine()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if _db_path.exists():
        _db_path.unlink()


@pytest.fixture(scope="session")
def session_factory(engine):
    return _create_session_factory(engine)


@pytest.fixture(autouse=True)
def _clean_state(engine):
    cache_manager.use(InMemoryCacheBackend())
    yield
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db

    class _SyncASGIClient:
        def __init__(self, fastapi_app):
            self._client = httpx.AsyncClient(
                transport=httpx.ASGITransport(app=fastapi_app),
                base_url="http://testserver",
            )

        def request(self, method: str, url: str, **kwargs):
            async def _do_request():
                return await self._client.request(method, url, **kwargs)

            return anyio.run(_do_request)

        def get(self, url: str, **kwargs):
            return self.request("GET", url, **kwargs)

        def post(self, url: str, **kwargs):
            return self.request("POST", url, **kwargs)

        def put(self, url: str, **kwargs):
            return self.request("PUT", url, **kwargs)

        def patch(self, url: str, **kwargs):
            return self.request("PATCH", url, **kwargs)

        def delete(self, url: str, **kwargs):
            return self.request("DELETE", url, **kwargs)

        def close(self):
            async def _do_close():
                await self._client.aclose()

            anyio.run(_do_close)

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            self.close()

    with _SyncASGIClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(session, username="customer", *, role=UserRole.CUSTOMER, points=0, supabase_user_id=None, email=None):
    user = User(
        username=username,
        email=email or f"{username}@example.com",
        password_hash=create_password_hash("secret123"),
        first_name=username.title(),
        role=role,
        supabase_user_id=supabase_user_id,
    )
    session.add(user)
    session.flush()
    session.add(UserPoints(user_id=user.id, points=0, total_earned=0, total_redeemed=0))
    session.commit()
    session.refresh(user)
    if points:
        from pizzeria.services import PointsLedger

        PointsLedger(session).award_bonus(user_id=user.id, points=points, description="Test grant")
    return user


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user_id=user.id, username=user.username, role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


def make_menu_item(session, name="Margherita", price="12.50", *, category_name="Pizzas"):
    category = session.query(Category).filter(Category.name == category_name).first()
    if category is None:
        category = Category(name=category_name, order=1)
        session.add(category)
        session.flush()
    item = MenuItem(category_id=category.id, name=name, base_price=Decimal(price))
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def make_reward(session, **overrides):
    values = {
        "name": "$5 off",
        "description": "Five dollars off your next order",
        "points_required": 50,
        "discount_amount": Decimal("5.00"),
    }
    values.update(overrides)
    reward = Reward(**values)
    session.add(reward)
    session.commit()
    session.refresh(reward)
    return reward
