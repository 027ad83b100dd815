"""
Pytest configuration and shared fixtures.

Tests run against an in-memory SQLite database; the app is built with the
session factory injected so no PostgreSQL server is needed.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["SMTP_HOST"] = ""

from dataclasses import dataclass
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from marketplace.core.db import create_session_maker, init_db
from marketplace.core.security import create_access_token
from marketplace.main import create_app
from marketplace.models import Provider, Service, ServiceType, ServiceVariation, User, UserRole


@dataclass
class Marketplace:
    """Ids and auth headers of the seeded rows."""

    provider_user: User
    provider: Provider
    client: User
    other_client: User
    service_type: ServiceType
    service: Service
    hour_variation: ServiceVariation
    two_hour_variation: ServiceVariation

    @property
    def provider_headers(self) -> dict[str, str]:
        return auth_headers(self.provider_user)

    @property
    def client_headers(self) -> dict[str, str]:
        return auth_headers(self.client)

    @property
    def other_client_headers(self) -> dict[str, str]:
        return auth_headers(self.other_client)


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    app = create_app(session_maker=session_maker, run_background_jobs=False)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def marketplace(session_maker) -> Marketplace:
    """One provider offering one service with a 60 and a 120 minute variation, plus two clients."""
    async with session_maker() as session:
        provider_user = User(name="Paula Provider", email="paula@example.com", role=UserRole.PROVIDER)
        client_user = User(name="Carlos Client", email="carlos@example.com", role=UserRole.CLIENT)
        other_client = User(name="Olga Other", email="olga@example.com", role=UserRole.CLIENT)
        service_type = ServiceType(name="Cleaning", description="Home cleaning")
        session.add_all([provider_user, client_user, other_client, service_type])
        await session.flush()

        provider = Provider(user_id=provider_user.id, bio="Ten years of experience", city="Lisbon", state="LX")
        session.add(provider)
        await session.flush()

        service = Service(
            provider_id=provider.id,
            service_type_id=service_type.id,
            title="Apartment cleaning",
            description="Full apartment cleaning service",
        )
        session.add(service)
        await session.flush()

        hour = ServiceVariation(service_id=service.id, name="Standard", price=Decimal("50.00"), duration_minutes=60)
        two_hours = ServiceVariation(service_id=service.id, name="Deep", price=Decimal("90.00"), duration_minutes=120)
        session.add_all([hour, two_hours])
        await session.commit()

        return Marketplace(
            provider_user=provider_user,
            provider=provider,
            client=client_user,
            other_client=other_client,
            service_type=service_type,
            service=service,
            hour_variation=hour,
            two_hour_variation=two_hours,
        )


@pytest.fixture
def create_window(client, marketplace):
    """POST an availability window as the seeded provider and return the response."""

    async def _create(start: str, end: str):
        return await client.post(
            "/api/v1/providers/availabilities",
            json={"startDatetime": start, "endDatetime": end},
            headers=marketplace.provider_headers,
        )

    return _create


@pytest.fixture
def book(client, marketplace):
    """POST a booking for the seeded service as the seeded client (or `headers`)."""

    async def _book(start: str, variation: ServiceVariation | None = None, headers: dict | None = None):
        variation = variation or marketplace.hour_variation
        return await client.post(
            "/api/v1/bookings",
            json={
                "serviceId": marketplace.service.id,
                "variationId": variation.id,
                "startDatetime": start,
            },
            headers=headers or marketplace.client_headers,
        )

    return _book
