"""Shared pytest fixtures for the storefront API tests."""

import json
import os
from decimal import Decimal

# Must be set before the app reads its settings
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-with-enough-length-0123456789")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")

import httpx  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.database import Base, get_db  # noqa: E402
from app.core.security import create_access_token, hash_password  # noqa: E402
from app.main import app  # noqa: E402
from app.models.shop import Category, Product  # noqa: E402
from app.models.user import Role, User  # noqa: E402
from app.modules.auth.policy import Principal  # noqa: E402
from app.modules.shop.payment import PaymentService, get_payment_service  # noqa: E402

API = "/api/v1"


@pytest.fixture
async def engine():
    """In-memory SQLite database with all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def gateway_requests():
    """Payloads sent to the mocked payment gateway."""
    return []


@pytest.fixture
def payment_service(gateway_requests):
    """Payment service talking to a mocked gateway."""

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        gateway_requests.append(payload)
        return httpx.Response(
            200,
            json={
                "id": "order_TEST123",
                "entity": "order",
                "amount": payload["amount"],
                "currency": payload["currency"],
                "receipt": payload["receipt"],
                "status": "created",
            },
        )

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PaymentService(http_client=http_client)


@pytest.fixture
async def client(session_factory, payment_service):
    """API client bound to the test database and mocked gateway."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_service] = lambda: payment_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


class Seeder:
    """Creates rows directly through the ORM."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    async def user(
        self,
        email: str = "user@example.com",
        password: str = "user12345",
        role: Role = Role.USER,
        name: str = "Regular User",
    ) -> User:
        async with self.session_factory() as session:
            user = User(
                name=name,
                email=email,
                hashed_password=hash_password(password),
                role=role,
            )
            session.add(user)
            await session.commit()
            return user

    async def category(self, name: str = "Electronics") -> Category:
        async with self.session_factory() as session:
            category = Category(name=name)
            session.add(category)
            await session.commit()
            return category

    async def product(
        self,
        category: Category,
        name: str = "Smartphone X",
        price: str = "999.99",
        stock: int = 50,
        description: str = "A high-end smartphone with the latest features.",
    ) -> Product:
        async with self.session_factory() as session:
            product = Product(
                name=name,
                description=description,
                price=Decimal(price),
                image_url=f"https://img.example.com/{name.replace(' ', '-').lower()}.png",
                stock=stock,
                category_id=category.id,
            )
            session.add(product)
            await session.commit()
            return product

    async def count(self, model) -> int:
        async with self.session_factory() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar_one()

    async def get(self, model, pk):
        async with self.session_factory() as session:
            return await session.get(model, pk)


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
async def customer(seed):
    return await seed.user()


@pytest.fixture
async def admin(seed):
    return await seed.user(
        email="admin@example.com",
        password="admin12345",
        role=Role.ADMIN,
        name="Admin User",
    )


def login_as(client: AsyncClient, user: User) -> AsyncClient:
    """Attach an auth cookie for ``user`` to the client."""
    token = create_access_token(
        Principal(id=user.id, email=user.email, role=user.role).to_claims()
    )
    client.cookies.set("auth_token", token)
    return client


@pytest.fixture
def customer_client(client, customer):
    return login_as(client, customer)


@pytest.fixture
def admin_client(client, admin):
    return login_as(client, admin)
