from datetime import date, datetime, timedelta
from typing import Callable, Dict, Any, Iterable, List, Optional
from uuid import uuid4
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from carwash.core.config import settings
from carwash.core.errors import (
    AlreadyPaid,
    BookingNotFound,
    FeedbackNotAllowed,
    InvalidFormat,
    InvalidTransition,
    ServiceNotFound,
    SlotUnavailable,
    TooLateToCancel,
    Unauthorized,
)
from carwash.core.logger import logger
from carwash.models.db_models import (
    Actor,
    Booking,
    BookingStatus,
    Feedback,
    PaymentReceipt,
    Vehicle,
)
from carwash.services.availability_service import AvailabilityService
from carwash.services.db_service import BookingStore
from carwash.services.shop_service import ShopDirectory
from carwash.services.time_utils import (
    appointment_start,
    minutes_to_time,
    minutes_until,
    parse_date,
    time_to_minutes,
)

ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

SYSTEM_ACTOR = "system"


class BookingService:
    """
    Booking lifecycle: creation with a concurrency-safe slot claim, then
    the pending -> confirmed -> completed / cancelled / rejected transitions.

    Every transition is one compare-and-set write on the booking record, so
    a transition either applies all of its fields or none.
    """

    def __init__(
        self,
        store: BookingStore,
        shops: ShopDirectory,
        availability: Optional[AvailabilityService] = None,
        clock: Optional[Callable[[], datetime]] = None,
        tz: Optional[ZoneInfo] = None,
        cancel_lead_minutes: Optional[int] = None,
        auto_confirm_lead_minutes: Optional[int] = None,
    ):
        self.store = store
        self.shops = shops
        self.tz = tz or ZoneInfo(settings.TIMEZONE)
        self.availability = availability or AvailabilityService(store, shops, tz=self.tz)
        self.clock = clock or (lambda: datetime.now(self.tz))
        self.cancel_lead_minutes = (
            settings.CANCEL_LEAD_MINUTES if cancel_lead_minutes is None else cancel_lead_minutes
        )
        self.auto_confirm_lead_minutes = (
            settings.AUTO_CONFIRM_LEAD_MINUTES if auto_confirm_lead_minutes is None else auto_confirm_lead_minutes
        )

    # --- helpers ---

    def _start_of(self, booking: Booking) -> datetime:
        return appointment_start(booking.date, booking.time, self.tz)

    def _today(self, now: datetime) -> date:
        return now.astimezone(self.tz).date()

    async def load_booking(self, booking_id: str) -> Booking:
        booking = await self.store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(f"Booking '{booking_id}' not found")
        return booking

    @staticmethod
    def _ensure_owner(actor: Actor, booking: Booking):
        if actor.is_admin or actor.id != booking.customer_id:
            raise Unauthorized("Only the customer who made the booking can do this")

    @staticmethod
    def _ensure_status(booking: Booking, allowed: Iterable[BookingStatus], action: str):
        if booking.status not in allowed:
            raise InvalidTransition(f"Cannot {action} a {booking.status.value} booking")

    async def _commit(self, booking: Booking, patch: Dict[str, Any]) -> Booking:
        """Write `patch` only if the booking is still in the state we validated."""
        updated = await self.store.update_booking(
            booking.id,
            patch,
            expected={"status": booking.status, "is_paid": booking.is_paid},
        )
        if updated is None:
            raise InvalidTransition(f"Booking {booking.id} was changed by someone else, reload and retry")
        return updated

    # --- reads ---

    async def get_booking(self, actor: Actor, booking_id: str) -> Booking:
        booking = await self.load_booking(booking_id)
        if actor.is_admin:
            if actor.shop_id != booking.shop_id:
                raise Unauthorized("Booking belongs to a different shop")
        elif actor.id != booking.customer_id:
            raise Unauthorized("Booking belongs to a different customer")
        return booking

    async def list_customer_bookings(self, actor: Actor) -> List[Booking]:
        return await self.store.list_by_customer(actor.id)

    async def list_upcoming_bookings(self, actor: Actor) -> List[Booking]:
        today = self._today(self.clock())
        bookings = [
            b for b in await self.store.list_by_customer(actor.id)
            if b.status in ACTIVE_STATUSES and b.date >= today
        ]
        return sorted(bookings, key=lambda b: (b.date, b.time))

    # --- transitions ---

    async def create_booking(
        self,
        actor: Actor,
        shop_id: str,
        day,
        time: str,
        service_id: str,
        add_on_ids: Optional[List[str]] = None,
        vehicle: Optional[Vehicle] = None,
        remarks: str = "",
    ) -> Booking:
        """
        Reserve a slot. Availability is checked up front and again atomically
        by the store at insert time; losing a race raises SlotUnavailable.
        """
        if actor.is_admin:
            raise Unauthorized("Bookings are created by customers")

        shop = await self.shops.get_shop(shop_id)
        day = parse_date(day)
        start_minute = time_to_minutes(time)
        time = minutes_to_time(start_minute)

        service = shop.get_service(service_id)
        if service is None:
            raise ServiceNotFound(f"Service '{service_id}' is not offered by {shop_id}")

        add_ons = []
        for add_on_id in add_on_ids or []:
            add_on = shop.get_add_on(add_on_id)
            if add_on is None:
                raise ServiceNotFound(f"Add-on '{add_on_id}' is not offered by {shop_id}")
            add_ons.append(add_on)

        if start_minute < time_to_minutes(shop.opening_hour) or \
                start_minute + service.duration > time_to_minutes(shop.closing_hour):
            raise SlotUnavailable(f"{time} is outside opening hours {shop.opening_hour}-{shop.closing_hour}")

        now = self.clock()
        if appointment_start(day, time, self.tz) <= now:
            raise SlotUnavailable(f"{day} {time} is in the past")

        logger.info(f"📥 Booking request - shop: {shop_id}, day: {day}, time: {time}, service: {service.id}")

        if not await self.availability.is_slot_available(shop_id, day, time, service.duration):
            raise SlotUnavailable(f"{day} {time} is already booked")

        status = BookingStatus.CONFIRMED if shop.auto_accept else BookingStatus.PENDING
        booking = Booking(
            customer_id=actor.id,
            shop_id=shop.id,
            shop_name=shop.name,
            date=day,
            time=time,
            service=service,
            add_ons=add_ons,
            vehicle=vehicle,
            remarks=remarks,
            total_price=service.price + sum(a.price for a in add_ons),
            status=status,
            auto_accepted=shop.auto_accept,
            created_at=now,
            updated_at=now,
            updated_by=actor.id,
        )

        if not await self.store.insert_if_slot_free(booking):
            logger.warning(f"⚠️ Slot {shop_id} {day} {time} was taken while booking")
            raise SlotUnavailable(f"{day} {time} was just booked by someone else")

        logger.info(f"✅ Booking {booking.id} created ({booking.status.value})")
        return booking

    async def cancel_booking(self, actor: Actor, booking_id: str) -> Booking:
        booking = await self.load_booking(booking_id)
        self._ensure_owner(actor, booking)

        if booking.is_paid:
            raise AlreadyPaid("Payment has been made and is non-refundable")
        self._ensure_status(booking, ACTIVE_STATUSES, "cancel")

        now = self.clock()
        if minutes_until(self._start_of(booking), now) < self.cancel_lead_minutes:
            raise TooLateToCancel(
                f"Bookings cannot be cancelled less than {self.cancel_lead_minutes} minutes before the appointment"
            )

        updated = await self._commit(booking, {
            "status": BookingStatus.CANCELLED,
            "cancelled_at": now,
            "cancelled_by": "customer",
            "updated_at": now,
            "updated_by": actor.id,
        })
        logger.info(f"🗑️ Booking {booking.id} cancelled by customer")
        return updated

    async def pay_booking(self, actor: Actor, booking_id: str, payment_method: str) -> PaymentReceipt:
        """
        Mark a booking paid. Paying at or after the appointment start also
        completes a pending or confirmed booking.
        """
        booking = await self.load_booking(booking_id)
        self._ensure_owner(actor, booking)

        if booking.is_paid:
            raise AlreadyPaid("Booking is already paid")
        self._ensure_status(
            booking, (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED), "pay for"
        )

        now = self.clock()
        patch = {
            "is_paid": True,
            "payment_method": payment_method,
            "paid_at": now,
            "updated_at": now,
            "updated_by": actor.id,
        }
        if booking.status in ACTIVE_STATUSES and now >= self._start_of(booking):
            patch["status"] = BookingStatus.COMPLETED

        updated = await self._commit(booking, patch)
        logger.info(f"💳 Booking {booking.id} paid via {payment_method} ({updated.status.value})")

        return PaymentReceipt(
            booking_id=updated.id,
            transaction_id=f"TXN_{uuid4().hex[:12].upper()}",
            amount=updated.total_price,
            method=payment_method,
            status=updated.status,
        )

    async def submit_feedback(self, actor: Actor, booking_id: str, rating: int, comment: str = "") -> Booking:
        booking = await self.load_booking(booking_id)
        self._ensure_owner(actor, booking)

        if booking.status != BookingStatus.COMPLETED:
            raise FeedbackNotAllowed("Feedback can only be left for completed bookings")
        if booking.feedback is not None:
            raise FeedbackNotAllowed("Feedback was already submitted for this booking")

        now = self.clock()
        try:
            feedback = Feedback(rating=rating, comment=comment, submitted_at=now)
        except ValidationError:
            raise InvalidFormat(f"Rating must be between 1 and 5, got {rating!r}")

        updated = await self.store.update_booking(
            booking.id,
            {"feedback": feedback, "updated_at": now, "updated_by": actor.id},
            expected={"status": BookingStatus.COMPLETED, "feedback": None},
        )
        if updated is None:
            raise FeedbackNotAllowed("Feedback was already submitted for this booking")
        return updated

    async def auto_confirm_sweep(self, now: Optional[datetime] = None) -> int:
        """
        Confirm today's pending bookings that start within the auto-confirm
        lead window. Re-running is a no-op; a failing booking is logged and
        skipped so it does not stop the others.
        """
        now = now or self.clock()
        horizon = now + timedelta(minutes=self.auto_confirm_lead_minutes)
        confirmed = 0

        for booking in await self.store.list_pending_for_date(self._today(now)):
            try:
                if self._start_of(booking) > horizon:
                    continue
                updated = await self.store.update_booking(
                    booking.id,
                    {
                        "status": BookingStatus.CONFIRMED,
                        "auto_confirmed_at": now,
                        "updated_at": now,
                        "updated_by": SYSTEM_ACTOR,
                    },
                    expected={"status": BookingStatus.PENDING},
                )
                if updated is not None:
                    confirmed += 1
                    logger.info(f"⏰ Booking {booking.id} auto-confirmed ({booking.date} {booking.time})")
            except Exception as e:
                logger.error(f"❌ Auto-confirm failed for booking {booking.id}: {e}")

        if confirmed:
            logger.info(f"✅ Auto-confirm sweep confirmed {confirmed} booking(s)")
        return confirmed

    # --- admin transitions (authorization is done by AdminBookingService) ---

    async def _admin_transition(self, actor: Actor, booking: Booking, target: BookingStatus,
                                allowed: Iterable[BookingStatus]) -> Booking:
        self._ensure_status(booking, allowed, f"mark as {target.value}")
        now = self.clock()
        patch = {"status": target, "updated_at": now, "updated_by": actor.id}
        if target in (BookingStatus.CANCELLED, BookingStatus.REJECTED):
            patch["cancelled_at"] = now
            patch["cancelled_by"] = "admin"
        updated = await self._commit(booking, patch)
        logger.info(f"🛠️ Booking {booking.id}: {booking.status.value} -> {target.value} by admin {actor.id}")
        return updated

    async def admin_confirm(self, actor: Actor, booking: Booking) -> Booking:
        return await self._admin_transition(actor, booking, BookingStatus.CONFIRMED, (BookingStatus.PENDING,))

    async def admin_cancel(self, actor: Actor, booking: Booking) -> Booking:
        return await self._admin_transition(actor, booking, BookingStatus.CANCELLED, ACTIVE_STATUSES)

    async def admin_reject(self, actor: Actor, booking: Booking) -> Booking:
        return await self._admin_transition(actor, booking, BookingStatus.REJECTED, ACTIVE_STATUSES)

    async def admin_complete(self, actor: Actor, booking: Booking) -> Booking:
        return await self._admin_transition(actor, booking, BookingStatus.COMPLETED, (BookingStatus.CONFIRMED,))
