from typing import Dict, List, Optional

from carwash.core.errors import InvalidTransition, Unauthorized
from carwash.models.db_models import Actor, Booking, BookingStatus
from carwash.services.booking_service import BookingService


class AdminBookingService:
    """Shop-admin operations; an admin only ever touches their own shop's bookings."""

    def __init__(self, bookings: BookingService):
        self.bookings = bookings
        self._transitions = {
            BookingStatus.CONFIRMED: bookings.admin_confirm,
            BookingStatus.CANCELLED: bookings.admin_cancel,
            BookingStatus.REJECTED: bookings.admin_reject,
            BookingStatus.COMPLETED: bookings.admin_complete,
        }

    @staticmethod
    def _ensure_admin(actor: Actor, shop_id: Optional[str] = None) -> str:
        if not actor.is_admin or not actor.shop_id:
            raise Unauthorized("Admin access required")
        if shop_id is not None and shop_id != actor.shop_id:
            raise Unauthorized("Booking is for a different shop")
        return actor.shop_id

    async def admin_update_booking_status(self, actor: Actor, booking_id: str, new_status) -> Booking:
        self._ensure_admin(actor)
        booking = await self.bookings.load_booking(booking_id)
        self._ensure_admin(actor, booking.shop_id)

        try:
            new_status = BookingStatus(new_status)
        except ValueError:
            raise InvalidTransition(f"Unknown booking status {new_status!r}")
        transition = self._transitions.get(new_status)
        if transition is None:
            raise InvalidTransition(f"Admins cannot set a booking to {new_status.value}")
        return await transition(actor, booking)

    async def list_shop_bookings(self, actor: Actor, status: Optional[BookingStatus] = None) -> List[Booking]:
        shop_id = self._ensure_admin(actor)
        await self.bookings.auto_confirm_sweep()
        bookings = await self.bookings.store.list_by_shop(shop_id)
        if status is not None:
            bookings = [b for b in bookings if b.status == status]
        return bookings

    async def shop_stats(self, actor: Actor) -> Dict[str, float]:
        shop_id = self._ensure_admin(actor)
        bookings = await self.bookings.store.list_by_shop(shop_id)
        stats = {"total_bookings": len(bookings)}
        for status in BookingStatus:
            stats[f"{status.value}_bookings"] = sum(1 for b in bookings if b.status == status)
        stats["total_revenue"] = round(sum(b.total_price for b in bookings if b.is_paid), 2)
        return stats

    async def shop_customers(self, actor: Actor) -> List[Dict]:
        shop_id = self._ensure_admin(actor)
        customers: Dict[str, Dict] = {}
        for booking in await self.bookings.store.list_by_shop(shop_id):
            summary = customers.setdefault(booking.customer_id, {
                "customer_id": booking.customer_id,
                "total_bookings": 0,
                "total_spent": 0.0,
                "first_booking_date": booking.date,
                "last_booking_date": booking.date,
            })
            summary["total_bookings"] += 1
            if booking.is_paid:
                summary["total_spent"] = round(summary["total_spent"] + booking.total_price, 2)
            summary["first_booking_date"] = min(summary["first_booking_date"], booking.date)
            summary["last_booking_date"] = max(summary["last_booking_date"], booking.date)
        return sorted(customers.values(), key=lambda c: c["last_booking_date"], reverse=True)
