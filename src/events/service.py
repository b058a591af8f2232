from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import List, Optional

from src.models import Event
from src.events.schemas import EventCreate, EventUpdate, EventSnapshot
from src.exceptions import NotFoundError, DomainError
from src.logger_config import logger

class EventService:
    """Event lookup, search and administration"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_event(self, event_id: int) -> Optional[Event]:
        """Get event by ID"""
        return self.db.query(Event).filter(Event.id == event_id).first()
    
    def get_snapshot(self, event_id: int) -> Optional[EventSnapshot]:
        """Fresh display snapshot of an active event, read from live data"""
        event = self.get_event(event_id)
        if not event or not event.is_active:
            return None
        self.db.refresh(event)
        return EventSnapshot.model_validate(event)
    
    def search_events(self, keyword: str, limit: int = 3) -> List[EventSnapshot]:
        """Search bookable events by keyword (matches title, city, description, venue)"""
        
        escaped = keyword.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        events = self.db.query(Event).filter(
            Event.is_active.is_(True),
            Event.available_seats > 0,
            or_(
                Event.title.ilike(pattern, escape="\\"),
                Event.city.ilike(pattern, escape="\\"),
                Event.description.ilike(pattern, escape="\\"),
                Event.venue.ilike(pattern, escape="\\")
            )
        ).order_by(Event.event_date.asc()).limit(limit).all()
        
        return [EventSnapshot.model_validate(event) for event in events]
    
    def list_events(self, active_only: bool = True) -> List[Event]:
        query = self.db.query(Event)
        if active_only:
            query = query.filter(Event.is_active.is_(True))
        return query.order_by(Event.event_date.asc()).all()
    
    def create_event(self, event_data: EventCreate) -> Event:
        """Create a new event with every seat available"""
        event = Event(
            **event_data.dict(),
            available_seats=event_data.total_seats,
            is_active=True
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        
        logger.info(f"Event created: {event.id} '{event.title}' with {event.total_seats} seats")
        return event
    
    def update_event(self, event_id: int, event_update: EventUpdate) -> Event:
        """Update event details; a capacity change shifts available seats by the same delta"""
        event = self.get_event(event_id)
        if not event:
            raise NotFoundError("Event not found")
        
        update_data = event_update.dict(exclude_unset=True)
        
        if "total_seats" in update_data:
            delta = update_data["total_seats"] - event.total_seats
            if event.available_seats + delta < 0:
                raise DomainError("Cannot reduce capacity below seats already held or sold")
            event.available_seats += delta
        
        for field, value in update_data.items():
            setattr(event, field, value)
        
        self.db.commit()
        self.db.refresh(event)
        return event
