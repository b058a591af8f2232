from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

class QRPayload(BaseModel):
    """Data encoded into a ticket's QR code"""
    booking_id: str = Field(..., alias="bookingId")
    event_id: int = Field(..., alias="eventId")
    event_title: str = Field(..., alias="eventTitle")
    quantity: int
    user_name: str = Field(..., alias="userName")
    issued_at: datetime = Field(..., alias="issuedAt")
    verification_code: str = Field(..., alias="verificationCode")
    
    class Config:
        populate_by_name = True

class QRArtifact(BaseModel):
    """Rendered QR image and where it can be fetched from"""
    image_png: Optional[bytes] = None
    file_path: Optional[str] = None
    url: Optional[str] = None

class Ticket(BaseModel):
    """Result of finalizing a booking"""
    id: int
    booking_id: str
    event_id: int
    event_title: str
    venue: str
    city: str
    event_date: datetime
    user_name: str
    quantity: int
    total_price: Decimal
    qr_code_data: str
    qr_code_url: Optional[str] = None
    qr_code_image: Optional[bytes] = Field(None, exclude=True)

class BookingDetails(BaseModel):
    """A stored booking joined with its event display fields"""
    id: int
    booking_id: str
    event_id: int
    phone: str
    user_name: str
    quantity: int
    total_price: Decimal
    status: BookingStatus
    qr_code_url: Optional[str] = None
    created_at: datetime
    title: str
    city: str
    venue: str
    event_date: datetime
