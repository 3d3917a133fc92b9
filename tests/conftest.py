import os

# przed importem sharedcart: settings czyta env przy imporcie
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_secret")

from contextlib import contextmanager
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sharedcart.data.database import Base
from sharedcart.data.models import SharedCartModel, SharedCartMemberModel, SharedCartItemModel  # noqa: F401
from sharedcart.domain.payments import VerifiedTransaction
from sharedcart.domain.schemas import Identity

# 12:00 w Lagos, poza godzinami szczytu
NOON_UTC = datetime(2026, 3, 10, 11, 0, tzinfo=timezone.utc)


MENU = {
    "jollof": {"id": "jollof", "name": "Jollof Rice", "price": 300, "is_available": True},
    "plantain": {"id": "plantain", "name": "Fried Plantain", "price": 200, "is_available": True},
    "soup": {"id": "soup", "name": "Pepper Soup", "price": 700, "is_available": False},
}

ZONES = {
    "marian": {"id": "marian", "name": "Marian", "base_fee": 1600, "peak_fee": 1900, "is_active": True},
    "closed": {"id": "closed", "name": "Inactive Zone", "base_fee": 1000, "peak_fee": 1200, "is_active": False},
}


class FakeCatalog:
    def __init__(self, menu=None, zones=None):
        self.menu = dict(MENU if menu is None else menu)
        self.zones = dict(ZONES if zones is None else zones)
        self.calls = []

    def fetch_menu_item(self, menu_item_id):
        self.calls.append(("menu", menu_item_id))
        return self.menu.get(menu_item_id)

    def fetch_delivery_zone(self, zone_id):
        self.calls.append(("zone", zone_id))
        return self.zones.get(zone_id)


class FakeGateway:
    def __init__(self):
        self.transactions = {}
        self.verified = []

    def add(self, reference, amount, metadata, status="success"):
        self.transactions[reference] = VerifiedTransaction(
            reference=reference,
            status=status,
            amount=amount,
            metadata=metadata,
        )

    def verify_transaction(self, reference):
        self.verified.append(reference)
        return self.transactions[reference]


class FakeLockService:
    def __init__(self):
        self.locked = []

    @contextmanager
    def cart_lock(self, cart_id):
        self.locked.append(cart_id)
        yield


class FakeNotifier:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def notify_cart_completed(self, cart_id, initiator_id, total_amount):
        self.sent.append((cart_id, initiator_id, total_amount))
        return not self.fail


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return lambda: NOON_UTC


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def alice():
    return Identity(user_id="user_alice", email="alice@example.com")


@pytest.fixture
def bob():
    return Identity(user_id="user_bob", email="bob@example.com")


@pytest.fixture
def carol():
    return Identity(user_id="user_carol", email="carol@example.com")


@pytest.fixture
def make_cart(db, catalog, clock):
    """Buduje koszyk przez prawdziwe serwisy: inicjator, czlonkowie, potem pozycje."""
    from sharedcart.services.item_ledger import ItemLedgerService
    from sharedcart.services.membership_service import MembershipService

    def _make(initiator, members=(), items=(), payment_mode="split", order_type="Dine-In"):
        membership = MembershipService(db, clock)
        created = membership.create_cart(initiator, None, payment_mode, order_type)
        for member in members:
            membership.join_cart(member, created["invite_code"])

        ledger = ItemLedgerService(db, catalog, clock)
        for owner, menu_item_id, quantity in items:
            ledger.add_item(created["cart_id"], owner, menu_item_id, quantity)
        return created["cart_id"]

    return _make


@pytest.fixture
def failing_notifier():
    return FakeNotifier(fail=True)
