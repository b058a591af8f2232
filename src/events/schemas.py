from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

class SeatDirection(str, Enum):
    """Direction of a seat counter adjustment"""
    DECREASE = "decrease"
    INCREASE = "increase"

class EventSnapshot(BaseModel):
    """Display fields of an event captured at a point in the conversation"""
    id: int
    title: str
    description: Optional[str] = None
    city: str
    venue: str
    event_date: datetime
    price: Decimal
    available_seats: int
    total_seats: int
    
    class Config:
        from_attributes = True

class EventBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    city: str = Field(..., min_length=2, max_length=100)
    venue: str = Field(..., min_length=2, max_length=255)
    event_date: datetime
    price: Decimal = Field(..., ge=0)

class EventCreate(EventBase):
    total_seats: int = Field(..., gt=0, le=100000)

class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = None
    city: Optional[str] = Field(None, min_length=2, max_length=100)
    venue: Optional[str] = Field(None, min_length=2, max_length=255)
    event_date: Optional[datetime] = None
    price: Optional[Decimal] = Field(None, ge=0)
    total_seats: Optional[int] = Field(None, gt=0, le=100000)
    is_active: Optional[bool] = None
    
    @validator('event_date')
    def validate_event_date(cls, v):
        if v is not None and v.tzinfo:
            return v.replace(tzinfo=None)
        return v

class EventResponse(EventBase):
    id: int
    total_seats: int
    available_seats: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True
