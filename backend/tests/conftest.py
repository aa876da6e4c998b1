"""
Pytest fixtures for test database, client, payment gateway and authentication.

Each test gets a fresh schema. By default that is a throwaway SQLite file;
set TEST_DATABASE_URL to a PostgreSQL database to run the suite against the
production dialect.
"""

import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from eventflow.main import app
from eventflow.core.exceptions import PaymentGatewayError
from eventflow.core.security import Identity, create_access_token, hash_password
from eventflow.db.base import Base
from eventflow.db.session import get_db
from eventflow.models.event import Event
from eventflow.models.ticket import Ticket
from eventflow.models.user import User, UserRole
from eventflow.services.gateway_factory import get_payment_gateway
from eventflow.services.interfaces.payment_gateway import (
    IntentVerification,
    PaymentGateway,
    PaymentIntent,
)

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")
PASSWORD = "testpassword123"


class FakeGateway(PaymentGateway):
    """In-memory processor. Intents succeed only when a test says so."""

    def __init__(self):
        self.intents = {}
        self.refunds = []
        self.refund_keys = {}
        self.fail_refunds = False
        self.calls = []

    async def create_intent(self, amount, currency, metadata):
        self.calls.append(("create_intent", metadata.get("booking_id")))
        intent_id = f"pi_test_{len(self.intents) + 1}"
        self.intents[intent_id] = {
            "status": "requires_payment_method",
            "amount": Decimal(amount),
            "currency": currency,
            "metadata": dict(metadata),
        }
        return PaymentIntent(external_id=intent_id, client_secret=f"{intent_id}_secret", amount=Decimal(amount))

    def succeed(self, intent_id, amount=None):
        intent = self.intents[intent_id]
        intent["status"] = "succeeded"
        if amount is not None:
            intent["amount"] = Decimal(amount)

    async def verify_intent(self, external_id):
        self.calls.append(("verify_intent", external_id))
        intent = self.intents.get(external_id)
        if intent is None:
            return IntentVerification(succeeded=False, status="not_found", amount=Decimal("0"), currency="")
        return IntentVerification(
            succeeded=intent["status"] == "succeeded",
            status=intent["status"],
            amount=intent["amount"],
            currency=intent["currency"],
            receipt_url=f"https://pay.test/receipts/{external_id}",
            customer_id="cus_test",
            metadata=intent["metadata"],
        )

    async def refund(self, external_id, idempotency_key=None):
        self.calls.append(("refund", external_id))
        if self.fail_refunds:
            raise PaymentGatewayError("Refund could not be issued")
        if idempotency_key in self.refund_keys:
            return self.refund_keys[idempotency_key]
        self.refunds.append(external_id)
        refund_id = f"re_test_{len(self.refunds)}"
        if idempotency_key:
            self.refund_keys[idempotency_key] = refund_id
        return refund_id


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'eventflow_test.db'}"
    test_engine = create_async_engine(url, echo=False, poolclass=NullPool)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for fixtures and service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, fake_gateway) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB and payment gateway dependencies overridden."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(db: AsyncSession, email: str, role: str = UserRole.USER, name: str = "Test User") -> User:
    user = User(name=name, email=email, role=role, hashed_password=hash_password(PASSWORD))
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def identity_for(user: User) -> Identity:
    return Identity(user_id=user.id, email=user.email, role=user.role)


def headers_for(user: User) -> dict:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


async def make_event(db: AsyncSession, organizer: User, **overrides) -> Event:
    start = datetime.now(timezone.utc) + timedelta(days=30)
    values = dict(
        title="Test Concert",
        description="A test event",
        category="Music",
        venue="Test Venue",
        start_date=start,
        end_date=start + timedelta(hours=3),
        max_attendees=100,
        current_attendees=0,
        price=Decimal("25.00"),
        is_free=False,
        is_published=True,
        organizer_id=organizer.id,
    )
    values.update(overrides)
    event = Event(**values)
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


async def make_ticket(db: AsyncSession, event: Event, quantity: int = 10, **overrides) -> Ticket:
    values = dict(
        event_id=event.id,
        name="General Admission",
        price=Decimal("25.00"),
        quantity=quantity,
        available_quantity=quantity,
    )
    values.update(overrides)
    ticket = Ticket(**values)
    db.add(ticket)
    await db.commit()
    await db.refresh(ticket)
    return ticket


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "test@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "other@example.com", name="Other User")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin@example.com", role=UserRole.ADMIN, name="Admin")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    return headers_for(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, admin_user: User) -> Event:
    """Published event with 100 places, organized by the admin."""
    return await make_event(db_session, admin_user)


@pytest_asyncio.fixture
async def test_ticket(db_session: AsyncSession, test_event: Event) -> Ticket:
    """10 units at 25.00."""
    return await make_ticket(db_session, test_event)


@pytest_asyncio.fixture
async def free_ticket(db_session: AsyncSession, test_event: Event) -> Ticket:
    return await make_ticket(db_session, test_event, quantity=50, name="Community", price=Decimal("0"))


@pytest_asyncio.fixture
async def sold_out_ticket(db_session: AsyncSession, test_event: Event) -> Ticket:
    return await make_ticket(db_session, test_event, quantity=5, available_quantity=0, name="Early Bird")
