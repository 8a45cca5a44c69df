from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from carwash.core.config_loader import load_shop_catalog
from carwash.models.db_models import Actor, Role
from carwash.services.admin_service import AdminBookingService
from carwash.services.booking_service import BookingService
from carwash.services.db_service import InMemoryBookingStore
from carwash.services.shop_service import ShopDirectory

KL = ZoneInfo("Asia/Kuala_Lumpur")

# Monday 2026-03-02, 10:00 shop time
NOW = datetime(2026, 3, 2, 10, 0, tzinfo=KL)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)


class FakeClock:
    """Settable clock so lead-time rules can be exercised deterministically."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def today():
    return TODAY

@pytest.fixture
def tomorrow():
    return TOMORROW

@pytest.fixture
def tz():
    return KL

@pytest.fixture
def catalog():
    return load_shop_catalog()

@pytest.fixture
def shops(catalog):
    return ShopDirectory(catalog)

@pytest.fixture
def store():
    return InMemoryBookingStore()

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def booking_service(store, shops, clock):
    return BookingService(
        store,
        shops,
        clock=clock,
        tz=KL,
        cancel_lead_minutes=120,
        auto_confirm_lead_minutes=30,
    )

@pytest.fixture
def admin_service(booking_service):
    return AdminBookingService(booking_service)

@pytest.fixture
def customer():
    return Actor(id="cust_alice")

@pytest.fixture
def other_customer():
    return Actor(id="cust_bob")

@pytest.fixture
def admin():
    return Actor(id="admin_selangor", role=Role.ADMIN, shop_id="selangor_premium")

@pytest.fixture
def other_admin():
    return Actor(id="admin_johor", role=Role.ADMIN, shop_id="johor_deluxe")
