from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from src.models import Booking, Event
from src.events.ledger import SeatLedger
from src.events.schemas import EventSnapshot
from src.bookings.schemas import BookingStatus, BookingDetails, QRPayload, Ticket
from src.bookings.ticket_service import TicketRenderer
from src.exceptions import DomainError
from src.logger_config import logger
from src.utils import generate_booking_id, now

MAX_BOOKING_ID_ATTEMPTS = 10

class BookingFinalizer:
    """Turns a confirmed hold or a paid balance flow into a permanent booking with a QR ticket"""
    
    def __init__(self, db: Session, renderer: Optional[TicketRenderer] = None):
        self.db = db
        self.ledger = SeatLedger(db)
        self.renderer = renderer or TicketRenderer()
    
    def finalize(
        self,
        event_id: int,
        phone: str,
        user_name: str,
        quantity: int,
        event_snapshot: EventSnapshot,
        commit: bool = True,
        current_time: Optional[datetime] = None
    ) -> Ticket:
        """Persist a confirmed booking. Seats must already be taken by the caller.

        The QR image is only rendered once the booking row is in place, so a
        failed insert leaves nothing on disk.
        """
        
        issued_at = current_time or now()
        total_price = Decimal(str(event_snapshot.price)) * quantity
        
        for _ in range(MAX_BOOKING_ID_ATTEMPTS):
            booking_id = generate_booking_id()
            if self._booking_id_taken(booking_id):
                logger.warning(f"Booking id collision on {booking_id}, regenerating")
                continue
            
            payload = QRPayload(
                booking_id=booking_id,
                event_id=event_id,
                event_title=event_snapshot.title,
                quantity=quantity,
                user_name=user_name,
                issued_at=issued_at,
                verification_code=booking_id
            )
            booking = Booking(
                booking_id=booking_id,
                event_id=event_id,
                phone=phone,
                user_name=user_name,
                quantity=quantity,
                total_price=total_price,
                status=BookingStatus.CONFIRMED.value,
                qr_code_data=self.renderer.encode_payload(payload),
                created_at=issued_at
            )
            
            # The savepoint keeps the caller's seat changes when the insert loses an id race
            try:
                with self.db.begin_nested():
                    self.db.add(booking)
            except IntegrityError:
                logger.warning(f"Booking id {booking_id} taken concurrently, regenerating")
                continue
            break
        else:
            raise DomainError("Could not generate a unique booking id", 500)
        
        # A failed QR render never fails the booking
        qr_code_image = None
        try:
            artifact = self.renderer.render(payload)
            booking.qr_code_url = artifact.url
            qr_code_image = artifact.image_png
        except Exception as e:
            logger.error(f"QR rendering failed for {booking_id}: {e}")
        self.db.flush()
        
        if commit:
            try:
                self.db.commit()
            except Exception:
                self.db.rollback()
                self.discard(booking_id)
                raise
        
        logger.info(f"Booking {booking_id} created: {quantity} ticket(s) for event {event_id}, total {total_price}")
        
        return Ticket(
            id=booking.id,
            booking_id=booking_id,
            event_id=event_id,
            event_title=event_snapshot.title,
            venue=event_snapshot.venue,
            city=event_snapshot.city,
            event_date=event_snapshot.event_date,
            user_name=user_name,
            quantity=quantity,
            total_price=total_price,
            qr_code_data=booking.qr_code_data,
            qr_code_url=booking.qr_code_url,
            qr_code_image=qr_code_image
        )
    
    def discard(self, booking_id: str):
        """Remove the QR image of a booking whose transaction was rolled back"""
        self.renderer.remove(booking_id)
    
    def cancel(self, booking_id: str) -> bool:
        """Cancel a confirmed booking and give its seats back. False if missing or already cancelled."""
        
        booking = self._get_booking_row(booking_id)
        if not booking:
            return False
        
        table = Booking.__table__
        try:
            result = self.db.execute(
                update(table)
                .where(table.c.id == booking.id, table.c.status == BookingStatus.CONFIRMED.value)
                .values(status=BookingStatus.CANCELLED.value)
            )
            if result.rowcount != 1:
                self.db.rollback()
                return False
            
            self.ledger.release(booking.event_id, booking.quantity)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        
        self.db.expire(booking, ["status"])
        logger.info(f"Booking {booking_id} cancelled, {booking.quantity} seat(s) released")
        return True
    
    def get_booking(self, booking_id: str) -> Optional[BookingDetails]:
        row = self._details_query().filter(
            Booking.booking_id == booking_id.strip().upper()
        ).first()
        if not row:
            return None
        return BookingDetails(**row._asdict())
    
    def get_bookings_by_phone(self, phone: str, limit: int = 5) -> List[BookingDetails]:
        """Confirmed bookings for a phone, newest first"""
        rows = self._details_query().filter(
            Booking.phone == phone,
            Booking.status == BookingStatus.CONFIRMED.value
        ).order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit).all()
        return [BookingDetails(**row._asdict()) for row in rows]
    
    def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        event_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[BookingDetails]:
        query = self._details_query()
        if status:
            query = query.filter(Booking.status == status.value)
        if event_id:
            query = query.filter(Booking.event_id == event_id)
        rows = query.order_by(Booking.created_at.desc(), Booking.id.desc()).offset(skip).limit(limit).all()
        return [BookingDetails(**row._asdict()) for row in rows]
    
    def _details_query(self):
        return self.db.query(
            Booking.id, Booking.booking_id, Booking.event_id, Booking.phone, Booking.user_name,
            Booking.quantity, Booking.total_price, Booking.status, Booking.qr_code_url,
            Booking.created_at, Event.title, Event.city, Event.venue, Event.event_date
        ).join(Event, Booking.event_id == Event.id)
    
    def _get_booking_row(self, booking_id: str) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.booking_id == booking_id.strip().upper()).first()
    
    def _booking_id_taken(self, booking_id: str) -> bool:
        return self.db.query(Booking.id).filter(Booking.booking_id == booking_id).first() is not None
