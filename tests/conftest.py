import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from app.database import create_db_and_tables, get_session
from app.main import app
from app.schemas.pricing_schemas import LineItem
from app.schemas.queue_schemas import QueuedOrder


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class FakeOrderApi:
    """Scripted order API: outcomes[key] is a list of dicts or exceptions."""

    def __init__(self, outcomes=None):
        self.outcomes = outcomes or {}
        self.calls = []

    def create_order(self, payload):
        key = payload["idempotency_key"]
        self.calls.append(key)
        script = self.outcomes.get(key, [])
        outcome = script.pop(0) if script else {"created": True}
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


def make_order(key="order-1", quantity=2, unit_price="10", **kwargs) -> QueuedOrder:
    return QueuedOrder(
        idempotency_key=key,
        items=[LineItem(id="burger", name="Burger", unit_price=unit_price, quantity=quantity)],
        payload={"customer_name": "Table 4", "payment_method": "cash"},
        **kwargs,
    )
