from pydantic import BaseModel, Field
from typing import Dict, List, Type, Union
from datetime import datetime
from enum import Enum

from src.events.schemas import EventSnapshot

class ConversationState(str, Enum):
    """Conversation states for a phone's booking flow"""
    INITIAL = "INITIAL"
    BROWSING = "BROWSING"
    ITEM_SELECTED = "ITEM_SELECTED"
    QUANTITY_CHOSEN = "QUANTITY_CHOSEN"
    HOLD_PENDING = "HOLD_PENDING"
    PAYMENT_PENDING = "PAYMENT_PENDING"

# Per-state context payloads
class EmptyContext(BaseModel):
    pass

class BrowsingContext(BaseModel):
    keywords: str
    results: List[EventSnapshot] = Field(..., min_length=1)

class ItemSelectedContext(BaseModel):
    item: EventSnapshot

class QuantityChosenContext(ItemSelectedContext):
    quantity: int = Field(..., ge=1)

class HoldPendingContext(QuantityChosenContext):
    user_name: str
    reservation_id: int

class PaymentPendingContext(QuantityChosenContext):
    user_name: str

SessionContext = Union[
    HoldPendingContext, PaymentPendingContext, QuantityChosenContext,
    ItemSelectedContext, BrowsingContext, EmptyContext
]

CONTEXT_MODELS: Dict[ConversationState, Type[BaseModel]] = {
    ConversationState.INITIAL: EmptyContext,
    ConversationState.BROWSING: BrowsingContext,
    ConversationState.ITEM_SELECTED: ItemSelectedContext,
    ConversationState.QUANTITY_CHOSEN: QuantityChosenContext,
    ConversationState.HOLD_PENDING: HoldPendingContext,
    ConversationState.PAYMENT_PENDING: PaymentPendingContext,
}

class ConversationSession(BaseModel):
    """A phone's loaded session with its context validated for the current state"""
    phone: str
    state: ConversationState
    context: SessionContext
    last_activity: datetime
