import pytest

from carwash.core.errors import InvalidTransition, Unauthorized
from carwash.models.db_models import BookingStatus

@pytest.fixture
def book(booking_service, customer, tomorrow):
    async def _book(time="09:00", service_id="normal_wash", actor=None, day=None, shop_id="selangor_premium"):
        return await booking_service.create_booking(actor or customer, shop_id, day or tomorrow, time, service_id)
    return _book

@pytest.mark.asyncio
async def test_admin_confirms_then_completes(admin_service, admin, book):
    booking = await book()

    confirmed = await admin_service.admin_update_booking_status(admin, booking.id, "confirmed")
    assert confirmed.status == BookingStatus.CONFIRMED
    assert confirmed.updated_by == admin.id

    completed = await admin_service.admin_update_booking_status(admin, booking.id, BookingStatus.COMPLETED)
    assert completed.status == BookingStatus.COMPLETED

@pytest.mark.asyncio
async def test_admin_reject_frees_the_slot(admin_service, booking_service, admin, other_customer, book, tomorrow):
    booking = await book()

    rejected = await admin_service.admin_update_booking_status(admin, booking.id, "rejected")
    assert rejected.status == BookingStatus.REJECTED
    assert rejected.cancelled_by == "admin"
    assert rejected.cancelled_at is not None

    again = await booking_service.create_booking(other_customer, "selangor_premium", tomorrow, "09:00", "normal_wash")
    assert again.status == BookingStatus.PENDING

@pytest.mark.asyncio
async def test_admin_can_cancel_confirmed_booking(admin_service, admin, book):
    booking = await book()
    await admin_service.admin_update_booking_status(admin, booking.id, "confirmed")

    cancelled = await admin_service.admin_update_booking_status(admin, booking.id, "cancelled")
    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.cancelled_by == "admin"

@pytest.mark.asyncio
@pytest.mark.parametrize("target", ["pending", "completed", "archived"])
async def test_invalid_admin_transitions(admin_service, admin, book, target):
    booking = await book()
    with pytest.raises(InvalidTransition):
        await admin_service.admin_update_booking_status(admin, booking.id, target)

@pytest.mark.asyncio
async def test_terminal_bookings_cannot_be_changed(admin_service, admin, book):
    booking = await book()
    await admin_service.admin_update_booking_status(admin, booking.id, "rejected")

    with pytest.raises(InvalidTransition):
        await admin_service.admin_update_booking_status(admin, booking.id, "confirmed")

@pytest.mark.asyncio
async def test_admin_scope(admin_service, other_admin, customer, book):
    booking = await book()

    with pytest.raises(Unauthorized):
        await admin_service.admin_update_booking_status(other_admin, booking.id, "confirmed")
    with pytest.raises(Unauthorized):
        await admin_service.admin_update_booking_status(customer, booking.id, "confirmed")
    with pytest.raises(Unauthorized):
        await admin_service.shop_stats(customer)

@pytest.mark.asyncio
async def test_stale_transition_is_refused(booking_service, customer, admin, book):
    booking = await book()
    stale = await booking_service.load_booking(booking.id)

    await booking_service.cancel_booking(customer, booking.id)

    # the copy we validated against says pending, the record no longer does
    with pytest.raises(InvalidTransition):
        await booking_service.admin_confirm(admin, stale)
    assert (await booking_service.load_booking(booking.id)).status == BookingStatus.CANCELLED

@pytest.mark.asyncio
async def test_listing_runs_auto_confirm_first(admin_service, admin, book, today):
    soon = await book(time="10:20", day=today)
    later = await book(time="15:00", day=today)
    await book(time="09:00", shop_id="johor_deluxe", service_id="standard_wash")

    bookings = await admin_service.list_shop_bookings(admin)

    assert [b.id for b in bookings] == [later.id, soon.id]
    by_id = {b.id: b for b in bookings}
    assert by_id[soon.id].status == BookingStatus.CONFIRMED
    assert by_id[later.id].status == BookingStatus.PENDING

    pending = await admin_service.list_shop_bookings(admin, BookingStatus.PENDING)
    assert [b.id for b in pending] == [later.id]

@pytest.mark.asyncio
async def test_shop_stats(admin_service, booking_service, admin, customer, other_customer, book):
    paid = await book(time="09:00")
    await booking_service.pay_booking(customer, paid.id, "card")
    cancelled = await book(time="10:00", actor=other_customer)
    await booking_service.cancel_booking(other_customer, cancelled.id)
    await book(time="11:00", service_id="nano_ceramic_wash")

    stats = await admin_service.shop_stats(admin)

    assert stats["total_bookings"] == 3
    assert stats["pending_bookings"] == 2
    assert stats["cancelled_bookings"] == 1
    assert stats["confirmed_bookings"] == 0
    assert stats["total_revenue"] == 25.0

@pytest.mark.asyncio
async def test_shop_customers(admin_service, booking_service, admin, customer, other_customer, book, today, tomorrow):
    first = await book(time="09:00")
    await booking_service.pay_booking(customer, first.id, "card")
    await book(time="16:00", day=today)
    await book(time="12:00", actor=other_customer)

    customers = await admin_service.shop_customers(admin)
    by_id = {c["customer_id"]: c for c in customers}

    alice = by_id[customer.id]
    assert alice["total_bookings"] == 2
    assert alice["total_spent"] == 25.0
    assert alice["first_booking_date"] == today
    assert alice["last_booking_date"] == tomorrow

    bob = by_id[other_customer.id]
    assert bob["total_bookings"] == 1
    assert bob["total_spent"] == 0.0
