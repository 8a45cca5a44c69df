from functools import lru_cache

from carwash.services.admin_service import AdminBookingService
from carwash.services.booking_service import BookingService
from carwash.services.db_service import create_booking_store
from carwash.services.shop_service import ShopDirectory


@lru_cache
def get_shop_directory() -> ShopDirectory:
    return ShopDirectory()


@lru_cache
def get_booking_service() -> BookingService:
    return BookingService(create_booking_store(), get_shop_directory())


@lru_cache
def get_admin_service() -> AdminBookingService:
    return AdminBookingService(get_booking_service())
