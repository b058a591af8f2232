from sqlalchemy import func
from sqlalchemy.orm import Session
from decimal import Decimal

from src.models import Event, Booking, Reservation
from src.admin.schemas import Metrics
from src.bookings.schemas import BookingStatus
from src.reservations.schemas import ReservationStatus

class AdminService:
    """Read-only reporting for the admin API"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_metrics(self) -> Metrics:
        total_events = self.db.query(func.count(Event.id)).filter(Event.is_active.is_(True)).scalar()
        total_bookings = self.db.query(func.count(Booking.id)).filter(
            Booking.status == BookingStatus.CONFIRMED.value
        ).scalar()
        active_reservations = self.db.query(func.count(Reservation.id)).filter(
            Reservation.status == ReservationStatus.ACTIVE.value
        ).scalar()
        total_revenue = self.db.query(func.coalesce(func.sum(Booking.total_price), 0)).filter(
            Booking.status == BookingStatus.CONFIRMED.value
        ).scalar()
        
        return Metrics(
            total_events=total_events or 0,
            total_bookings=total_bookings or 0,
            active_reservations=active_reservations or 0,
            total_revenue=Decimal(str(total_revenue)).quantize(Decimal("0.01"))
        )
