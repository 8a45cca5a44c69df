from enum import Enum
from typing import Optional, List
from datetime import date, datetime, timezone
from uuid import uuid4
from pydantic import BaseModel, Field


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


# Statuses whose time window still occupies the shop's schedule
BLOCKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
TERMINAL_STATUSES = (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REJECTED)


class Role(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class Actor(BaseModel):
    id: str
    role: Role = Role.CUSTOMER
    shop_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class Service(BaseModel):
    id: str
    name: str = ""
    duration: int = Field(gt=0)  # minutes
    price: float = 0.0


class AddOn(BaseModel):
    id: str
    name: str = ""
    price: float = 0.0


class City(BaseModel):
    id: str
    name: str


class Shop(BaseModel):
    id: str
    name: str = ""
    city_id: Optional[str] = None
    address: str = ""
    opening_hour: str
    closing_hour: str
    auto_accept: bool = False
    services: List[Service] = Field(default_factory=list)
    add_ons: List[AddOn] = Field(default_factory=list)

    def get_service(self, service_id: str) -> Optional[Service]:
        return next((s for s in self.services if s.id == service_id), None)

    def get_add_on(self, add_on_id: str) -> Optional[AddOn]:
        return next((a for a in self.add_ons if a.id == add_on_id), None)


class Vehicle(BaseModel):
    plate_number: str = ""
    type: str = ""
    brand: str = ""
    model: str = ""
    color: str = ""


class Feedback(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    submitted_at: Optional[datetime] = None


class Booking(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    customer_id: str
    shop_id: str
    shop_name: str = ""
    date: date
    time: str  # "HH:MM"
    service: Service
    add_ons: List[AddOn] = Field(default_factory=list)
    vehicle: Optional[Vehicle] = None
    remarks: str = ""
    total_price: float = 0.0
    status: BookingStatus = BookingStatus.PENDING
    auto_accepted: bool = False

    is_paid: bool = False
    payment_method: Optional[str] = None
    paid_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    auto_confirmed_at: Optional[datetime] = None

    feedback: Optional[Feedback] = None

    @property
    def duration(self) -> int:
        return self.service.duration

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES


class PaymentReceipt(BaseModel):
    booking_id: str
    transaction_id: str
    amount: float
    method: str
    status: BookingStatus
