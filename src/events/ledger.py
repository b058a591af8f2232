from sqlalchemy import update
from sqlalchemy.orm import Session

from src.models import Event
from src.events.schemas import SeatDirection
from src.logger_config import logger

class SeatLedger:
    """Owns the arithmetic on an event's available_seats counter.

    Every adjustment is a single conditional UPDATE, so two concurrent
    decrements can never both succeed past the remaining seats. The ledger
    never commits; callers decide the transaction boundary.
    """
    
    def __init__(self, db: Session):
        self.db = db
    
    def adjust_seats(self, event_id: int, quantity: int, direction: SeatDirection) -> bool:
        """Decrease or increase available seats. Returns False when the change is refused."""
        
        if quantity <= 0:
            raise ValueError("Seat adjustment quantity must be positive")
        
        table = Event.__table__
        if direction == SeatDirection.DECREASE:
            stmt = (
                update(table)
                .where(table.c.id == event_id, table.c.available_seats >= quantity)
                .values(available_seats=table.c.available_seats - quantity)
            )
        else:
            # available_seats never exceeds total_seats
            stmt = (
                update(table)
                .where(table.c.id == event_id, table.c.available_seats + quantity <= table.c.total_seats)
                .values(available_seats=table.c.available_seats + quantity)
            )
        
        result = self.db.execute(stmt)
        success = result.rowcount == 1
        
        if success:
            self._expire_cached_event(event_id)
        elif direction == SeatDirection.INCREASE:
            logger.error(f"Refused to release {quantity} seat(s) on event {event_id}: would exceed total seats")
        
        return success
    
    def reserve(self, event_id: int, quantity: int) -> bool:
        return self.adjust_seats(event_id, quantity, SeatDirection.DECREASE)
    
    def release(self, event_id: int, quantity: int) -> bool:
        return self.adjust_seats(event_id, quantity, SeatDirection.INCREASE)
    
    def _expire_cached_event(self, event_id: int):
        """Drop a stale in-session copy of the event so the next read sees the new counter"""
        cached = self.db.identity_map.get(Session.identity_key(Event, event_id))
        if cached is not None:
            self.db.expire(cached, ["available_seats"])
