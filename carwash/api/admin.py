from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends

from carwash.api.deps import get_admin_service, get_booking_service
from carwash.core.security import get_current_actor, verify_secret_token
from carwash.models.api_models import StatusUpdateRequest, SweepResponse
from carwash.models.db_models import Actor, Booking, BookingStatus
from carwash.services.admin_service import AdminBookingService
from carwash.services.booking_service import BookingService

router = APIRouter(prefix="/admin")

@router.get("/bookings", response_model=List[Booking])
async def list_shop_bookings(
    status: Optional[BookingStatus] = None,
    actor: Actor = Depends(get_current_actor),
    admin_service: AdminBookingService = Depends(get_admin_service),
):
    return await admin_service.list_shop_bookings(actor, status)

@router.post("/bookings/{booking_id}/status", response_model=Booking)
async def update_booking_status(
    booking_id: str,
    req: StatusUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    admin_service: AdminBookingService = Depends(get_admin_service),
):
    return await admin_service.admin_update_booking_status(actor, booking_id, req.status)

@router.get("/stats")
async def shop_stats(
    actor: Actor = Depends(get_current_actor),
    admin_service: AdminBookingService = Depends(get_admin_service),
) -> Dict[str, Any]:
    return await admin_service.shop_stats(actor)

@router.get("/customers")
async def shop_customers(
    actor: Actor = Depends(get_current_actor),
    admin_service: AdminBookingService = Depends(get_admin_service),
) -> List[Dict[str, Any]]:
    return await admin_service.shop_customers(actor)

@router.post("/auto-confirm", response_model=SweepResponse, dependencies=[Depends(verify_secret_token)])
async def run_auto_confirm(booking_service: BookingService = Depends(get_booking_service)):
    """Entry point for an external scheduler (cron) to run the sweep."""
    return SweepResponse(confirmed=await booking_service.auto_confirm_sweep())
