from fastapi import APIRouter, Depends, Header, HTTPException, status, Query
from typing import List, Optional
from sqlalchemy.orm import Session
import secrets

from src.config import settings
from src.database import get_db
from src.admin.schemas import Metrics, SweepResponse, BookingCancelResponse
from src.admin.admin_service import AdminService
from src.events.schemas import EventCreate, EventUpdate, EventResponse
from src.events.service import EventService
from src.bookings.schemas import BookingDetails, BookingStatus
from src.bookings.booking_service import BookingFinalizer
from src.reservations.sweeper import sweeper
from src.exceptions import DomainError
from src.utils import is_booking_id
from src.logger_config import logger

def require_admin(authorization: Optional[str] = Header(None)):
    """Check the admin secret sent as "Bearer <secret>" or bare"""
    if not settings.ADMIN_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin authentication not configured"
        )
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    token = authorization[7:] if authorization.startswith("Bearer ") else authorization
    if not secrets.compare_digest(token, settings.ADMIN_SECRET):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin credentials")

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

# Event Management
@router.get("/events", response_model=List[EventResponse])
def list_events(active_only: bool = Query(False), db: Session = Depends(get_db)):
    """List events"""
    return EventService(db).list_events(active_only=active_only)

@router.get("/events/{event_id}", response_model=EventResponse)
def get_event(event_id: int, db: Session = Depends(get_db)):
    """Get event details"""
    event = EventService(db).get_event(event_id)
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event

@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(event_data: EventCreate, db: Session = Depends(get_db)):
    """Create a new event"""
    return EventService(db).create_event(event_data)

@router.put("/events/{event_id}", response_model=EventResponse)
def update_event(event_id: int, event_update: EventUpdate, db: Session = Depends(get_db)):
    """Update event details"""
    try:
        return EventService(db).update_event(event_id, event_update)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

# Booking Management
@router.get("/bookings", response_model=List[BookingDetails])
def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    event_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """List bookings, newest first"""
    return BookingFinalizer(db).list_bookings(status=status_filter, event_id=event_id, skip=skip, limit=limit)

@router.get("/bookings/{booking_id}", response_model=BookingDetails)
def get_booking(booking_id: str, db: Session = Depends(get_db)):
    """Get a booking by its friendly id"""
    if not is_booking_id(booking_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid booking ID format")
    
    booking = BookingFinalizer(db).get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking

@router.delete("/bookings/{booking_id}", response_model=BookingCancelResponse)
def cancel_booking(booking_id: str, db: Session = Depends(get_db)):
    """Cancel a booking and release its seats"""
    if not is_booking_id(booking_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid booking ID format")
    
    booking_id = booking_id.upper()
    if not BookingFinalizer(db).cancel(booking_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found or already cancelled")
    
    logger.info(f"Booking {booking_id} cancelled by admin")
    return BookingCancelResponse(success=True, message="Booking cancelled successfully", booking_id=booking_id)

# Maintenance
@router.post("/sweep", response_model=SweepResponse)
def run_sweep(db: Session = Depends(get_db)):
    """Expire stale holds and idle sessions now"""
    result = sweeper.run_once(db=db)
    return SweepResponse(**result.model_dump())

@router.get("/metrics", response_model=Metrics)
def get_metrics(db: Session = Depends(get_db)):
    """Get system metrics"""
    return AdminService(db).get_metrics()
