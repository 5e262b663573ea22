# booking_scheduler/schemas/bookings.py

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Timeslot(BaseModel):
    start: datetime
    end: datetime

    model_config = {"from_attributes": True}


class CustomerAddress(BaseModel):
    """Where the provider travels to."""
    address: str
    city: str
    postal_code: int

    model_config = {"from_attributes": True}


class BookingDraft(BaseModel):
    customer_ref: str
    customer_email: str = ""
    customer_name: str = ""
    customer_phone: str = ""

    date: date
    duration: int  # total minutes (whole group for group bookings)
    location: str
    address: Optional[CustomerAddress] = None
    timeslot: Timeslot

    price: float
    status: BookingStatus = BookingStatus.PENDING
    payment_status: bool = False
    treatment_ref: str
    is_guest: bool = False
    customer_message: str = ""

    model_config = {"from_attributes": True}


class Booking(BookingDraft):
    id: str

    # Backends with integer primary keys
    model_config = {"from_attributes": True, "coerce_numbers_to_str": True}


class Identity(BaseModel):
    """Authenticated customer."""
    uid: str
    email: str = ""
    display_name: str = ""
    phone: str = ""

    model_config = {"from_attributes": True}
