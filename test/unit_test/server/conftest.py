from dataclasses import dataclass
from datetime import timedelta
from typing import AsyncGenerator, Dict, Optional
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.pool import StaticPool

from safetrade.core.database.base import Base, utc_now
from safetrade.core.database.entities.listings import Listing
from safetrade.core.database.entities.messaging import Conversation
from safetrade.core.database.entities.profiles import UserProfile
from safetrade.core.database.entities.safe_zones import WEEKDAYS, SafeZone, SafeZoneMeeting
from safetrade.core.database.entities.vehicles import StolenVehicle
from safetrade.server.services.auth import AuthenticatedUser
from safetrade.server.services.errors import AuthServiceError

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Valid check digit, decodes to a 2013 Honda
VALID_VIN = "JH2PC4003DM100001"


@dataclass
class TestUser:
    __test__ = False

    id: str
    email: str
    token: str
    is_admin: bool = False

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def to_authenticated(self) -> AuthenticatedUser:
        return AuthenticatedUser(id=self.id, email=self.email, is_admin=self.is_admin)


@dataclass
class TestUsers:
    __test__ = False

    buyer: TestUser
    seller: TestUser
    other: TestUser
    admin: TestUser


class FakeAuthClient:
    """Resolves the test users' tokens without calling the auth service."""

    def __init__(self, users: TestUsers) -> None:
        self.by_token = {
            user.token: user.to_authenticated() for user in (users.buyer, users.seller, users.other, users.admin)
        }

    async def get_user(self, token: str) -> AuthenticatedUser:
        if token not in self.by_token:
            raise AuthServiceError("Token rejected by auth service: 401", status_code=401)
        return self.by_token[token]


class Seeder:
    """Inserts fixture rows straight through the session."""

    def __init__(self, session: AsyncSession, users: TestUsers) -> None:
        self.session = session
        self.users = users

    async def _save(self, entity):
        self.session.add(entity)
        await self.session.commit()
        return entity

    async def profile(self, user: TestUser, first_name: str, last_name: str) -> UserProfile:
        return await self._save(UserProfile(id=user.id, email=user.email, first_name=first_name, last_name=last_name))

    async def listing(self, owner: Optional[TestUser] = None, **overrides) -> Listing:
        values = dict(
            user_id=(owner or self.users.seller).id,
            title="2013 Honda CBR600RR",
            description="Well kept sport bike, always garaged, new tires.",
            price=7500,
            make="Honda",
            model="CBR600RR",
            year=2013,
            mileage=12000,
            condition="good",
            vin=VALID_VIN,
            city="Los Angeles",
            zip_code="90012",
            images=["https://images.example.com/cbr-1.jpg"],
        )
        values.update(overrides)
        return await self._save(Listing(**values))

    async def safe_zone(self, **overrides) -> SafeZone:
        values = dict(
            name="Downtown Police Station",
            address="100 W 1st St, Los Angeles, CA 90012",
            city="Los Angeles",
            state="CA",
            zip_code="90012",
            zone_type="police_station",
            status="active",
            is_verified=True,
            operating_hours={day: {"open": "00:00", "close": "23:59", "closed": False} for day in WEEKDAYS},
            features=["parking", "security_cameras"],
        )
        values.update(overrides)
        return await self._save(SafeZone(**values))

    async def conversation(self, listing: Listing, buyer: Optional[TestUser] = None) -> Conversation:
        return await self._save(
            Conversation(listing_id=listing.id, buyer_id=(buyer or self.users.buyer).id, seller_id=listing.user_id)
        )

    async def meeting(self, zone: SafeZone, listing: Listing, hours_from_now: float = 48, **overrides) -> SafeZoneMeeting:
        values = dict(
            safe_zone_id=zone.id,
            listing_id=listing.id,
            buyer_id=self.users.buyer.id,
            seller_id=listing.user_id,
            scheduled_datetime=utc_now() + timedelta(hours=hours_from_now),
            estimated_duration_minutes=30,
            safety_code="ABC123",
        )
        values.update(overrides)
        return await self._save(SafeZoneMeeting(**values))

    async def stolen_vehicle(self, vin: str, status: str = "active") -> StolenVehicle:
        return await self._save(
            StolenVehicle(
                vin=vin,
                report_id="LAPD-2025-0101",
                reported_date=utc_now() - timedelta(days=30),
                reporting_agency="Los Angeles Police Department",
                status=status,
            )
        )


@pytest.fixture
def users() -> TestUsers:
    return TestUsers(
        buyer=TestUser(id="11111111-1111-4111-8111-111111111111", email="buyer@example.com", token="buyer-token"),
        seller=TestUser(id="22222222-2222-4222-8222-222222222222", email="seller@example.com", token="seller-token"),
        other=TestUser(id="44444444-4444-4444-8444-444444444444", email="other@example.com", token="other-token"),
        admin=TestUser(
            id="33333333-3333-4333-8333-333333333333",
            email="ops@safetrade-admin.com",
            token="admin-token",
            is_admin=True,
        ),
    )


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Import entities to register them with SQLModel
    import safetrade.core.database.entities  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new session for each test."""
    async_session_maker = sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session_maker() as session:  # type: ignore[attr-defined]
        yield session


@pytest.fixture
def seed(session: AsyncSession, users: TestUsers) -> Seeder:
    return Seeder(session, users)


@pytest.fixture
def fake_auth(users: TestUsers) -> FakeAuthClient:
    return FakeAuthClient(users)


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession, fake_auth: FakeAuthClient) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and overridden dependencies."""
    from safetrade.core.database import get_session
    from safetrade.server.main import app
    from safetrade.server.services.auth import get_auth_client

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_auth_client] = lambda: fake_auth

    # Mock the lifespan to prevent database initialization during tests
    async def mock_lifespan(app):
        yield

    with patch("safetrade.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()
