from datetime import date, datetime, timedelta
from typing import List
from zoneinfo import ZoneInfo

from carwash.core.config import settings
from carwash.core.logger import logger
from carwash.services.db_service import BookingStore
from carwash.services.shop_service import ShopDirectory
from carwash.services.slots import booking_windows, generate_slots, overlaps
from carwash.services.time_utils import appointment_start, minutes_until, parse_date, time_to_minutes


class AvailabilityService:
    def __init__(self, store: BookingStore, shops: ShopDirectory, tz: ZoneInfo = None,
                 same_day_lead_minutes: int = None):
        self.store = store
        self.shops = shops
        self.tz = tz or ZoneInfo(settings.TIMEZONE)
        self.same_day_lead_minutes = (
            settings.SAME_DAY_LEAD_MINUTES if same_day_lead_minutes is None else same_day_lead_minutes
        )

    async def list_available_slots(self, shop_id: str, day: date, service_duration: int) -> List[str]:
        """
        Free start times for a service of `service_duration` minutes.
        Raises ShopNotFound for unknown shops.
        """
        shop = await self.shops.get_shop(shop_id)
        day = parse_date(day)

        candidates = generate_slots(service_duration, shop.opening_hour, shop.closing_hour)
        if not candidates:
            logger.warning(f"⚠️ No slots for {shop_id}: duration={service_duration}, hours {shop.opening_hour}-{shop.closing_hour}")
            return []

        windows = booking_windows(await self.store.list_blocking_bookings(shop_id, day))
        return [
            slot for slot in candidates
            if not overlaps(windows, time_to_minutes(slot), service_duration)
        ]

    async def is_slot_available(self, shop_id: str, day: date, time: str, service_duration: int) -> bool:
        start = time_to_minutes(time)
        windows = booking_windows(await self.store.list_blocking_bookings(shop_id, parse_date(day)))
        return not overlaps(windows, start, service_duration)

    # Booking-screen policy: same-day slots need a lead time and prompt payment

    def filter_same_day_slots(self, slots: List[str], day: date, now: datetime) -> List[str]:
        day = parse_date(day)
        if day != now.astimezone(self.tz).date():
            return list(slots)
        cutoff = now + timedelta(minutes=self.same_day_lead_minutes)
        return [slot for slot in slots if appointment_start(day, slot, self.tz) > cutoff]

    def requires_immediate_payment(self, day: date, time: str, now: datetime) -> bool:
        start = appointment_start(parse_date(day), time, self.tz)
        return minutes_until(start, now) < self.same_day_lead_minutes

    async def list_bookable_slots(self, shop_id: str, day: date, service_duration: int, now: datetime) -> List[str]:
        slots = await self.list_available_slots(shop_id, day, service_duration)
        return self.filter_same_day_slots(slots, day, now)
