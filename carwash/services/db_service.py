import asyncio
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from pydantic_core import to_jsonable_python
from supabase import create_async_client, AsyncClient

from carwash.core.config import settings
from carwash.core.logger import logger
from carwash.models.db_models import Booking, BookingStatus, BLOCKING_STATUSES
from carwash.services.slots import booking_windows, overlaps
from carwash.services.time_utils import time_to_minutes


class BookingStore(ABC):
    """
    Storage for booking records.

    A booking record is the single source of truth; the per-customer,
    per-shop and per-date listings are read indexes over it.
    """

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        ...

    @abstractmethod
    async def list_blocking_bookings(self, shop_id: str, day: date) -> List[Booking]:
        ...

    @abstractmethod
    async def insert_if_slot_free(self, booking: Booking) -> bool:
        """
        Atomically re-check the booking's window against the blocking
        bookings of its (shop, date) and insert it. Returns False on conflict.
        """

    @abstractmethod
    async def update_booking(
        self,
        booking_id: str,
        patch: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[Booking]:
        """
        Apply all fields of `patch` in one write. The write only happens if
        every field in `expected` still holds its given value (compare-and-set).
        Returns the updated booking, or None if nothing was written.
        """

    @abstractmethod
    async def list_by_customer(self, customer_id: str) -> List[Booking]:
        ...

    @abstractmethod
    async def list_by_shop(self, shop_id: str) -> List[Booking]:
        ...

    @abstractmethod
    async def list_pending_for_date(self, day: date) -> List[Booking]:
        ...


class InMemoryBookingStore(BookingStore):
    def __init__(self):
        self._bookings: Dict[str, Booking] = {}
        self._slot_locks: Dict[Tuple[str, date], asyncio.Lock] = defaultdict(asyncio.Lock)
        self._record_lock = asyncio.Lock()

    def _all(self) -> List[Booking]:
        return [b.model_copy(deep=True) for b in self._bookings.values()]

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    async def list_blocking_bookings(self, shop_id: str, day: date) -> List[Booking]:
        return [
            b for b in self._all()
            if b.shop_id == shop_id and b.date == day and b.status in BLOCKING_STATUSES
        ]

    async def insert_if_slot_free(self, booking: Booking) -> bool:
        async with self._slot_locks[(booking.shop_id, booking.date)]:
            existing = await self.list_blocking_bookings(booking.shop_id, booking.date)
            if overlaps(booking_windows(existing), time_to_minutes(booking.time), booking.duration):
                return False
            self._bookings[booking.id] = booking.model_copy(deep=True)
            return True

    async def update_booking(self, booking_id, patch, expected=None):
        async with self._record_lock:
            current = self._bookings.get(booking_id)
            if current is None:
                return None
            for field, value in (expected or {}).items():
                if getattr(current, field) != value:
                    return None
            updated = current.model_copy(update=patch, deep=True)
            self._bookings[booking_id] = updated
            return updated.model_copy(deep=True)

    async def list_by_customer(self, customer_id: str) -> List[Booking]:
        bookings = [b for b in self._all() if b.customer_id == customer_id]
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    async def list_by_shop(self, shop_id: str) -> List[Booking]:
        bookings = [b for b in self._all() if b.shop_id == shop_id]
        return sorted(bookings, key=lambda b: (b.date, b.time), reverse=True)

    async def list_pending_for_date(self, day: date) -> List[Booking]:
        return [b for b in self._all() if b.status == BookingStatus.PENDING and b.date == day]


class SupabaseBookingStore(BookingStore):
    """
    Booking store on a Supabase `bookings` table.

    The create path goes through the `claim_booking_slot` Postgres function
    (see supabase/migrations), which serialises inserts per (shop, date).
    """

    TABLE = "bookings"
    CLAIM_RPC = "claim_booking_slot"

    def __init__(self, url: str = "", key: str = "", client: Optional[AsyncClient] = None):
        self.url = url or settings.SUPABASE_URL
        self.key = key or settings.SUPABASE_KEY
        self._client = client

    async def get_client(self) -> AsyncClient:
        if not self._client:
            self._client = await create_async_client(self.url, self.key)
            logger.info("✅ Supabase Async client initialized")
        return self._client

    @staticmethod
    def _to_row(value) -> Any:
        return to_jsonable_python(value)

    @staticmethod
    def _to_bookings(rows) -> List[Booking]:
        return [Booking(**row) for row in rows or []]

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        client = await self.get_client()
        try:
            response = await client.table(self.TABLE).select("*").eq('id', booking_id).limit(1).execute()
        except Exception as e:
            logger.error(f"❌ DB Error (get_booking): {e}")
            raise
        bookings = self._to_bookings(response.data)
        return bookings[0] if bookings else None

    async def list_blocking_bookings(self, shop_id: str, day: date) -> List[Booking]:
        client = await self.get_client()
        try:
            response = await client.table(self.TABLE)\
                .select("*")\
                .eq('shop_id', shop_id)\
                .eq('date', day.isoformat())\
                .in_('status', [s.value for s in BLOCKING_STATUSES])\
                .execute()
        except Exception as e:
            logger.error(f"❌ DB Error (list_blocking_bookings): {e}")
            raise
        return self._to_bookings(response.data)

    async def insert_if_slot_free(self, booking: Booking) -> bool:
        client = await self.get_client()
        try:
            response = await client.rpc(self.CLAIM_RPC, {'p_booking': self._to_row(booking.model_dump())}).execute()
        except Exception as e:
            logger.error(f"❌ DB Error (insert_if_slot_free): {e}")
            raise
        claimed = bool(response.data)
        if claimed:
            logger.info(f"✅ Booking {booking.id} stored for {booking.shop_id} {booking.date} {booking.time}")
        return claimed

    async def update_booking(self, booking_id, patch, expected=None):
        client = await self.get_client()
        query = client.table(self.TABLE).update(self._to_row(patch)).eq('id', booking_id)
        for field, value in (expected or {}).items():
            if value is None:
                query = query.is_(field, "null")
            elif isinstance(value, bool):
                query = query.is_(field, str(value).lower())
            else:
                query = query.eq(field, self._to_row(value))
        try:
            response = await query.execute()
        except Exception as e:
            logger.error(f"❌ DB Error (update_booking): {e}")
            raise
        bookings = self._to_bookings(response.data)
        return bookings[0] if bookings else None

    async def list_by_customer(self, customer_id: str) -> List[Booking]:
        client = await self.get_client()
        try:
            response = await client.table(self.TABLE)\
                .select("*")\
                .eq('customer_id', customer_id)\
                .order('created_at', desc=True)\
                .execute()
        except Exception as e:
            logger.error(f"❌ DB Error (list_by_customer): {e}")
            raise
        return self._to_bookings(response.data)

    async def list_by_shop(self, shop_id: str) -> List[Booking]:
        client = await self.get_client()
        try:
            response = await client.table(self.TABLE)\
                .select("*")\
                .eq('shop_id', shop_id)\
                .order('date', desc=True)\
                .order('time', desc=True)\
                .execute()
        except Exception as e:
            logger.error(f"❌ DB Error (list_by_shop): {e}")
            raise
        return self._to_bookings(response.data)

    async def list_pending_for_date(self, day: date) -> List[Booking]:
        client = await self.get_client()
        try:
            response = await client.table(self.TABLE)\
                .select("*")\
                .eq('status', BookingStatus.PENDING.value)\
                .eq('date', day.isoformat())\
                .execute()
        except Exception as e:
            logger.error(f"❌ DB Error (list_pending_for_date): {e}")
            raise
        return self._to_bookings(response.data)


def create_booking_store() -> BookingStore:
    if settings.SUPABASE_URL and settings.SUPABASE_KEY:
        return SupabaseBookingStore()
    logger.warning("⚠️ Supabase credentials missing, using in-memory booking store")
    return InMemoryBookingStore()
