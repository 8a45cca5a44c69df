import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from pydantic_core import to_jsonable_python

from carwash.core.config import settings
from carwash.models.db_models import Booking, BookingStatus, Service
from carwash.services.db_service import (
    InMemoryBookingStore,
    SupabaseBookingStore,
    create_booking_store,
)

def mock_client(data=None):
    """Supabase client whose query builder chains back to itself."""
    query = MagicMock()
    for name in ("select", "eq", "in_", "is_", "order", "limit", "update"):
        getattr(query, name).return_value = query
    query.execute = AsyncMock(return_value=MagicMock(data=data))
    client = MagicMock()
    client.table.return_value = query
    client.rpc.return_value = query
    return client, query

@pytest.fixture
def booking(tomorrow):
    return Booking(
        customer_id="cust_alice",
        shop_id="selangor_premium",
        date=tomorrow,
        time="09:00",
        service=Service(id="normal_wash", name="Normal Wash", duration=30, price=25.0),
        total_price=25.0,
    )

@pytest.mark.asyncio
async def test_get_booking_parses_rows(booking):
    client, query = mock_client([to_jsonable_python(booking.model_dump())])
    store = SupabaseBookingStore(client=client)

    loaded = await store.get_booking(booking.id)

    client.table.assert_called_with("bookings")
    query.eq.assert_called_with("id", booking.id)
    assert loaded.model_dump() == booking.model_dump()

@pytest.mark.asyncio
async def test_get_booking_missing():
    client, _ = mock_client([])
    assert await SupabaseBookingStore(client=client).get_booking("nope") is None

@pytest.mark.asyncio
async def test_insert_goes_through_claim_function(booking):
    client, _ = mock_client(True)
    store = SupabaseBookingStore(client=client)

    assert await store.insert_if_slot_free(booking) is True

    name, params = client.rpc.call_args.args
    assert name == "claim_booking_slot"
    assert params["p_booking"]["id"] == booking.id
    assert params["p_booking"]["date"] == booking.date.isoformat()
    assert params["p_booking"]["service"]["duration"] == 30

@pytest.mark.asyncio
async def test_insert_reports_conflict(booking):
    client, _ = mock_client(False)
    assert await SupabaseBookingStore(client=client).insert_if_slot_free(booking) is False

@pytest.mark.asyncio
async def test_update_is_conditional_on_expected_fields(booking):
    updated = booking.model_copy(update={"status": BookingStatus.CONFIRMED})
    client, query = mock_client([to_jsonable_python(updated.model_dump())])
    store = SupabaseBookingStore(client=client)

    result = await store.update_booking(
        booking.id,
        {"status": BookingStatus.CONFIRMED},
        expected={"status": BookingStatus.PENDING, "is_paid": False, "feedback": None},
    )

    assert result.status == BookingStatus.CONFIRMED
    query.update.assert_called_once_with({"status": "confirmed"})
    query.eq.assert_any_call("id", booking.id)
    query.eq.assert_any_call("status", "pending")
    query.is_.assert_any_call("is_paid", "false")
    query.is_.assert_any_call("feedback", "null")

@pytest.mark.asyncio
async def test_update_returns_none_when_nothing_matched(booking):
    client, _ = mock_client([])
    store = SupabaseBookingStore(client=client)
    assert await store.update_booking(booking.id, {"is_paid": True}, expected={"is_paid": False}) is None

@pytest.mark.asyncio
async def test_blocking_bookings_filter_by_status(booking, tomorrow):
    client, query = mock_client([to_jsonable_python(booking.model_dump())])
    store = SupabaseBookingStore(client=client)

    bookings = await store.list_blocking_bookings("selangor_premium", tomorrow)

    assert [b.id for b in bookings] == [booking.id]
    query.eq.assert_any_call("date", tomorrow.isoformat())
    query.in_.assert_called_once_with("status", ["pending", "confirmed", "completed"])

@pytest.mark.asyncio
async def test_db_errors_propagate(tomorrow):
    client, query = mock_client()
    query.execute.side_effect = Exception("Connection refused")
    store = SupabaseBookingStore(client=client)

    with pytest.raises(Exception, match="Connection refused"):
        await store.list_pending_for_date(tomorrow)

@pytest.mark.asyncio
async def test_client_is_created_lazily():
    client, _ = mock_client([])
    with patch("carwash.services.db_service.create_async_client", new_callable=AsyncMock) as mock_create:
        mock_create.return_value = client
        store = SupabaseBookingStore(url="https://example.supabase.co", key="anon")

        await store.list_by_customer("cust_alice")
        await store.list_by_shop("selangor_premium")

        mock_create.assert_awaited_once_with("https://example.supabase.co", "anon")

def test_store_selection_follows_credentials():
    with patch.object(settings, "SUPABASE_URL", ""), patch.object(settings, "SUPABASE_KEY", ""):
        assert isinstance(create_booking_store(), InMemoryBookingStore)
    with patch.object(settings, "SUPABASE_URL", "https://example.supabase.co"), \
            patch.object(settings, "SUPABASE_KEY", "anon"):
        assert isinstance(create_booking_store(), SupabaseBookingStore)
