from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from enum import Enum

class ReservationStatus(str, Enum):
    """Reservation status enumeration.

    active --confirm--> confirmed
    active --cancel/expire--> expired
    """
    ACTIVE = "active"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"

class ActiveHold(BaseModel):
    """An unexpired seat hold joined with the event display fields"""
    id: int
    event_id: int
    phone: str
    quantity: int
    status: ReservationStatus
    reserved_at: datetime
    expires_at: datetime
    title: str
    city: str
    venue: str
    event_date: datetime
    price: Decimal
    
    @property
    def total_price(self) -> Decimal:
        return self.price * self.quantity
