from datetime import date
from typing import Optional, List
from pydantic import BaseModel, Field

from carwash.models.db_models import Booking, Vehicle

# --- Incoming Request Models ---

class CheckSlotRequest(BaseModel):
    date: date
    time: str
    duration: int

class CreateBookingRequest(BaseModel):
    shop_id: str
    date: date
    time: str
    service_id: str
    add_on_ids: List[str] = Field(default_factory=list)
    vehicle: Optional[Vehicle] = None
    remarks: str = ""

class PayBookingRequest(BaseModel):
    payment_method: str

class FeedbackRequest(BaseModel):
    rating: int
    comment: str = ""

class StatusUpdateRequest(BaseModel):
    status: str

# --- Outgoing Response Models ---

class SlotsResponse(BaseModel):
    shop_id: str
    date: date
    duration: int
    slots: List[str]

class SlotCheckResponse(BaseModel):
    available: bool

class CreateBookingResponse(BaseModel):
    booking: Booking
    # Same-day bookings inside the lead window are paid upfront and non-refundable
    requires_immediate_payment: bool = False

class SweepResponse(BaseModel):
    confirmed: int

class ErrorResponse(BaseModel):
    code: str
    message: str
