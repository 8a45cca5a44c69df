from typing import List

from fastapi import APIRouter, Depends

from carwash.api.deps import get_booking_service
from carwash.core.security import get_current_actor
from carwash.models.api_models import (
    CreateBookingRequest,
    CreateBookingResponse,
    FeedbackRequest,
    PayBookingRequest,
)
from carwash.models.db_models import Actor, Booking, PaymentReceipt
from carwash.services.booking_service import BookingService

router = APIRouter(prefix="/bookings")

@router.post("", response_model=CreateBookingResponse, status_code=201)
async def create_booking(
    req: CreateBookingRequest,
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    booking = await booking_service.create_booking(
        actor,
        req.shop_id,
        req.date,
        req.time,
        req.service_id,
        add_on_ids=req.add_on_ids,
        vehicle=req.vehicle,
        remarks=req.remarks,
    )
    immediate = booking_service.availability.requires_immediate_payment(
        booking.date, booking.time, booking_service.clock()
    )
    return CreateBookingResponse(booking=booking, requires_immediate_payment=immediate)

@router.get("", response_model=List[Booking])
async def list_my_bookings(
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    return await booking_service.list_customer_bookings(actor)

@router.get("/upcoming", response_model=List[Booking])
async def list_upcoming_bookings(
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    return await booking_service.list_upcoming_bookings(actor)

@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    return await booking_service.get_booking(actor, booking_id)

@router.post("/{booking_id}/cancel", response_model=Booking)
async def cancel_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    return await booking_service.cancel_booking(actor, booking_id)

@router.post("/{booking_id}/pay", response_model=PaymentReceipt)
async def pay_booking(
    booking_id: str,
    req: PayBookingRequest,
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    return await booking_service.pay_booking(actor, booking_id, req.payment_method)

@router.post("/{booking_id}/feedback", response_model=Booking)
async def submit_feedback(
    booking_id: str,
    req: FeedbackRequest,
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    return await booking_service.submit_feedback(actor, booking_id, req.rating, req.comment)
