from typing import List, Optional
from datetime import datetime, timedelta
from sqlalchemy import update
from sqlalchemy.orm import Session

from src.config import settings
from src.models import Event, Reservation
from src.events.ledger import SeatLedger
from src.reservations.schemas import ReservationStatus, ActiveHold
from src.exceptions import NotFoundError, InsufficientSeats, ReservationFailed
from src.logger_config import logger
from src.utils import now

class ReservationManager:
    """Creates, confirms, cancels and expires time-limited seat holds"""
    
    def __init__(self, db: Session):
        self.db = db
        self.ledger = SeatLedger(db)
    
    def create_hold(
        self,
        event_id: int,
        phone: str,
        quantity: int,
        ttl_minutes: Optional[int] = None,
        current_time: Optional[datetime] = None
    ) -> int:
        """Hold seats for a phone. All-or-nothing: any failure rolls back every step."""
        
        ttl_minutes = ttl_minutes or settings.RESERVATION_TTL_MINUTES
        current_time = current_time or now()
        
        try:
            event = self.db.query(Event).filter(Event.id == event_id).first()
            if not event or not event.is_active:
                raise NotFoundError("Event not found")
            
            # One active hold per phone; a superseded hold gives its seats back
            self._release_active_holds(phone)
            
            self.db.refresh(event)
            if event.available_seats < quantity:
                raise InsufficientSeats(
                    f"Only {event.available_seats} seat(s) available",
                    available=event.available_seats
                )
            
            if not self.ledger.reserve(event_id, quantity):
                raise ReservationFailed()
            
            reservation = Reservation(
                event_id=event_id,
                phone=phone,
                quantity=quantity,
                status=ReservationStatus.ACTIVE.value,
                reserved_at=current_time,
                expires_at=current_time + timedelta(minutes=ttl_minutes)
            )
            self.db.add(reservation)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        
        logger.info(
            f"Hold {reservation.id} created: {quantity} seat(s) on event {event_id} "
            f"for {phone}, expires {reservation.expires_at.isoformat()}"
        )
        return reservation.id
    
    def get_active_hold(self, phone: str, current_time: Optional[datetime] = None) -> Optional[ActiveHold]:
        """Get the phone's hold if it is active and not yet past its expiry"""
        
        current_time = current_time or now()
        row = self.db.query(
            Reservation.id, Reservation.event_id, Reservation.phone, Reservation.quantity,
            Reservation.status, Reservation.reserved_at, Reservation.expires_at,
            Event.title, Event.city, Event.venue, Event.event_date, Event.price
        ).join(Event, Reservation.event_id == Event.id).filter(
            Reservation.phone == phone,
            Reservation.status == ReservationStatus.ACTIVE.value,
            Reservation.expires_at > current_time
        ).order_by(Reservation.reserved_at.desc()).first()
        
        if not row:
            return None
        return ActiveHold(**row._asdict())
    
    def get_reservation(self, reservation_id: int) -> Optional[Reservation]:
        return self.db.query(Reservation).filter(Reservation.id == reservation_id).first()
    
    def confirm(self, reservation_id: int, commit: bool = True, current_time: Optional[datetime] = None) -> bool:
        """Move an unexpired active hold to confirmed. False if it is no longer active."""
        
        current_time = current_time or now()
        table = Reservation.__table__
        result = self.db.execute(
            update(table)
            .where(
                table.c.id == reservation_id,
                table.c.status == ReservationStatus.ACTIVE.value,
                table.c.expires_at > current_time
            )
            .values(status=ReservationStatus.CONFIRMED.value)
        )
        confirmed = result.rowcount == 1
        
        if commit:
            self.db.commit()
        
        if confirmed:
            logger.info(f"Hold {reservation_id} confirmed")
        else:
            logger.warning(f"Hold {reservation_id} could not be confirmed: not active")
        return confirmed
    
    def cancel(self, reservation_id: int) -> bool:
        """Release an active hold's seats and mark it expired. False if missing or not active."""
        
        try:
            released = self._release(reservation_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        
        if released:
            logger.info(f"Hold {reservation_id} cancelled and seats released")
        return released
    
    def sweep_expired(self, current_time: Optional[datetime] = None) -> int:
        """Expire every active hold past its expiry, releasing seats once per hold"""
        
        current_time = current_time or now()
        expired_ids = [
            reservation_id for (reservation_id,) in self.db.query(Reservation.id).filter(
                Reservation.status == ReservationStatus.ACTIVE.value,
                Reservation.expires_at <= current_time
            ).all()
        ]
        
        expired_count = 0
        for reservation_id in expired_ids:
            # Each hold is released in its own transaction
            try:
                if self._release(reservation_id):
                    expired_count += 1
                self.db.commit()
            except Exception:
                self.db.rollback()
                logger.exception(f"Failed to expire hold {reservation_id}")
        
        if expired_count:
            logger.info(f"Expired {expired_count} hold(s) and released their seats")
        return expired_count
    
    def list_active(self) -> List[Reservation]:
        return self.db.query(Reservation).filter(
            Reservation.status == ReservationStatus.ACTIVE.value
        ).all()
    
    def _release_active_holds(self, phone: str) -> int:
        active_ids = [
            reservation_id for (reservation_id,) in self.db.query(Reservation.id).filter(
                Reservation.phone == phone,
                Reservation.status == ReservationStatus.ACTIVE.value
            ).all()
        ]
        released = 0
        for reservation_id in active_ids:
            if self._release(reservation_id):
                released += 1
                logger.info(f"Hold {reservation_id} superseded by a new hold for {phone}")
        return released
    
    def _release(self, reservation_id: int) -> bool:
        """Flip active -> expired and restore seats. Only the caller that wins the flip releases."""
        
        reservation = self.get_reservation(reservation_id)
        if not reservation:
            return False
        
        table = Reservation.__table__
        result = self.db.execute(
            update(table)
            .where(table.c.id == reservation_id, table.c.status == ReservationStatus.ACTIVE.value)
            .values(status=ReservationStatus.EXPIRED.value)
        )
        if result.rowcount != 1:
            return False
        
        self.db.expire(reservation, ["status"])
        self.ledger.release(reservation.event_id, reservation.quantity)
        return True
