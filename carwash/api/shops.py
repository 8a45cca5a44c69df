from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from carwash.api.deps import get_booking_service, get_shop_directory
from carwash.models.api_models import CheckSlotRequest, SlotCheckResponse, SlotsResponse
from carwash.models.db_models import City, Shop
from carwash.services.booking_service import BookingService
from carwash.services.shop_service import ShopDirectory

router = APIRouter()

@router.get("/cities", response_model=List[City])
async def list_cities(shops: ShopDirectory = Depends(get_shop_directory)):
    return await shops.list_cities()

@router.get("/cities/{city_id}/shops", response_model=List[Shop])
async def list_city_shops(city_id: str, shops: ShopDirectory = Depends(get_shop_directory)):
    return await shops.list_shops(city_id)

@router.get("/shops/{shop_id}", response_model=Shop)
async def get_shop(shop_id: str, shops: ShopDirectory = Depends(get_shop_directory)):
    return await shops.get_shop(shop_id)

@router.get("/shops/{shop_id}/slots", response_model=SlotsResponse)
async def list_slots(
    shop_id: str,
    date: date,
    duration: Optional[int] = None,
    service_id: Optional[str] = None,
    booking_service: BookingService = Depends(get_booking_service),
):
    """
    Slots the booking screen can offer: free ones, minus same-day slots
    inside the lead window. Duration comes from `duration` or `service_id`.
    """
    if duration is None:
        if not service_id:
            raise HTTPException(status_code=400, detail="Provide duration or service_id")
        shop = await booking_service.shops.get_shop(shop_id)
        service = shop.get_service(service_id)
        if service is None:
            raise HTTPException(status_code=404, detail=f"Service '{service_id}' not found")
        duration = service.duration

    slots = await booking_service.availability.list_bookable_slots(
        shop_id, date, duration, booking_service.clock()
    )
    return SlotsResponse(shop_id=shop_id, date=date, duration=duration, slots=slots)

@router.post("/shops/{shop_id}/slots/check", response_model=SlotCheckResponse)
async def check_slot(
    shop_id: str,
    req: CheckSlotRequest,
    booking_service: BookingService = Depends(get_booking_service),
):
    await booking_service.shops.get_shop(shop_id)
    available = await booking_service.availability.is_slot_available(shop_id, req.date, req.time, req.duration)
    return SlotCheckResponse(available=available)
