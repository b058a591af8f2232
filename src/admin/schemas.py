from pydantic import BaseModel
from decimal import Decimal

class Metrics(BaseModel):
    """Operational counters for the admin dashboard"""
    total_events: int
    total_bookings: int
    active_reservations: int
    total_revenue: Decimal

class SweepResponse(BaseModel):
    ran: bool
    expired_holds: int
    idle_sessions: int

class BookingCancelResponse(BaseModel):
    success: bool
    message: str
    booking_id: str
