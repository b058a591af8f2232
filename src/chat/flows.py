from abc import ABC, abstractmethod
from typing import List, Optional
from datetime import datetime
from sqlalchemy.orm import Session

from src.chat import messages
from src.chat.parser import parse_confirmation
from src.messaging.schemas import OutboundMessage
from src.sessions.schemas import (
    ConversationState, QuantityChosenContext, HoldPendingContext, PaymentPendingContext
)
from src.sessions.service import SessionStore
from src.events.service import EventService
from src.events.ledger import SeatLedger
from src.reservations.service import ReservationManager
from src.bookings.booking_service import BookingFinalizer
from src.bookings.schemas import Ticket
from src.accounts.service import AccountService
from src.exceptions import (
    InsufficientSeats, InsufficientBalance, NotFoundError, ReservationFailed
)
from src.logger_config import logger

class PaymentFlow(ABC):
    """How a booking is paid for once event, quantity and name are known.

    Both variants share the selection, quantity and name steps; they differ
    in the pending state entered after the name and in what YES does there.
    """
    
    pending_state: ConversationState
    
    def __init__(self, db: Session, sessions: SessionStore, finalizer: BookingFinalizer):
        self.db = db
        self.sessions = sessions
        self.finalizer = finalizer
        self.events = EventService(db)
    
    @abstractmethod
    def begin(self, phone: str, context: QuantityChosenContext, user_name: str) -> List[OutboundMessage]:
        """Enter the pending state after a valid name"""
    
    @abstractmethod
    def complete(self, phone: str, context) -> List[OutboundMessage]:
        """Pay and finalize after the user says YES"""
    
    @abstractmethod
    def abandon(self, phone: str, context) -> None:
        """Undo whatever begin() claimed"""
    
    def handle(self, phone: str, context, text: str) -> List[OutboundMessage]:
        confirmation = parse_confirmation(text)
        if confirmation is None:
            return [OutboundMessage.of_text(messages.confirmation_prompt_message())]
        
        if not confirmation:
            self.abandon(phone, context)
            self.sessions.reset(phone)
            logger.info(f"{phone} declined the booking")
            return [OutboundMessage.of_text(messages.cancel_message())]
        
        return self.complete(phone, context)
    
    def _rollback(self, ticket: Optional[Ticket]):
        """Undo the open transaction and any QR image written for it"""
        self.db.rollback()
        if ticket:
            self.finalizer.discard(ticket.booking_id)
    
    def _ticket_messages(self, ticket: Ticket) -> List[OutboundMessage]:
        replies = [OutboundMessage.of_text(messages.ticket_confirmation_message(ticket))]
        if ticket.qr_code_url:
            replies.append(OutboundMessage.of_media(ticket.qr_code_url, messages.qr_caption(ticket.booking_id)))
        return replies

class HoldFlow(PaymentFlow):
    """Reserve seats for a limited time, then confirm the hold into a booking"""
    
    pending_state = ConversationState.HOLD_PENDING
    
    def __init__(self, db: Session, sessions: SessionStore, finalizer: BookingFinalizer):
        super().__init__(db, sessions, finalizer)
        self.reservations = ReservationManager(db)
    
    def begin(self, phone: str, context: QuantityChosenContext, user_name: str) -> List[OutboundMessage]:
        try:
            reservation_id = self.reservations.create_hold(context.item.id, phone, context.quantity)
        except NotFoundError:
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.event_unavailable_message())]
        except InsufficientSeats as e:
            logger.warning(f"Hold for {phone} on event {context.item.id} failed: {e.message}")
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.hold_failed_message(e.message))]
        
        hold = self.reservations.get_active_hold(phone)
        if not hold or hold.id != reservation_id:
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.reservation_expired_message())]
        
        self.sessions.save(phone, self.pending_state, {
            "user_name": user_name,
            "reservation_id": reservation_id
        })
        return [OutboundMessage.of_text(messages.hold_summary_message(user_name, hold))]
    
    def complete(
        self,
        phone: str,
        context: HoldPendingContext,
        current_time: Optional[datetime] = None
    ) -> List[OutboundMessage]:
        hold = self.reservations.get_active_hold(phone, current_time=current_time)
        if not hold or hold.id != context.reservation_id:
            logger.info(f"Hold {context.reservation_id} for {phone} is no longer active")
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.reservation_expired_message())]
        
        snapshot = context.item.model_copy(update={
            "title": hold.title,
            "city": hold.city,
            "venue": hold.venue,
            "event_date": hold.event_date,
            "price": hold.price
        })
        
        # Confirming the hold and inserting the booking commit together
        ticket = None
        try:
            if not self.reservations.confirm(hold.id, commit=False, current_time=current_time):
                self.db.rollback()
                self.sessions.reset(phone)
                return [OutboundMessage.of_text(messages.reservation_expired_message())]
            
            ticket = self.finalizer.finalize(
                hold.event_id, phone, context.user_name, hold.quantity, snapshot,
                commit=False, current_time=current_time
            )
            self.db.commit()
        except Exception:
            self._rollback(ticket)
            raise
        
        self.sessions.reset(phone)
        return self._ticket_messages(ticket)
    
    def abandon(self, phone: str, context: HoldPendingContext) -> None:
        if self.reservations.cancel(context.reservation_id):
            logger.info(f"Hold {context.reservation_id} released after {phone} cancelled")

class BalanceFlow(PaymentFlow):
    """Charge the user's prepaid balance and book in a single transaction"""
    
    pending_state = ConversationState.PAYMENT_PENDING
    
    def __init__(self, db: Session, sessions: SessionStore, finalizer: BookingFinalizer):
        super().__init__(db, sessions, finalizer)
        self.ledger = SeatLedger(db)
        self.accounts = AccountService(db)
    
    def begin(self, phone: str, context: QuantityChosenContext, user_name: str) -> List[OutboundMessage]:
        self.accounts.get_or_create_account(phone, user_name)
        balance = self.accounts.get_balance(phone)
        total = context.item.price * context.quantity
        
        self.sessions.save(phone, self.pending_state, {"user_name": user_name})
        return [OutboundMessage.of_text(messages.payment_summary_message(
            user_name, context.item, context.quantity, balance, total
        ))]
    
    def complete(self, phone: str, context: PaymentPendingContext) -> List[OutboundMessage]:
        event_id = context.item.id
        quantity = context.quantity
        
        # Seat decrement, booking and debit succeed or fail together
        ticket = None
        try:
            live = self.events.get_snapshot(event_id)
            if not live:
                raise NotFoundError("Event not found")
            
            total = live.price * quantity
            balance = self.accounts.get_balance(phone)
            if balance < total:
                raise InsufficientBalance(balance, total)
            
            if live.available_seats < quantity:
                raise InsufficientSeats(available=live.available_seats)
            if not self.ledger.reserve(event_id, quantity):
                raise ReservationFailed()
            
            ticket = self.finalizer.finalize(
                event_id, phone, context.user_name, quantity, live, commit=False
            )
            new_balance = self.accounts.deduct(
                phone, ticket.total_price, f"Ticket booking - {live.title}", booking_id=ticket.booking_id
            )
            self.db.commit()
        except NotFoundError:
            self._rollback(ticket)
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.event_unavailable_message())]
        except InsufficientBalance as e:
            self._rollback(ticket)
            logger.warning(f"Payment by {phone} declined: {e.message}")
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.insufficient_balance_message(e.balance, e.required))]
        except InsufficientSeats as e:
            self._rollback(ticket)
            logger.warning(f"Booking by {phone} on event {event_id} failed: {e.message}")
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.insufficient_seats_message(e.available, quantity))]
        except Exception:
            self._rollback(ticket)
            raise
        
        self.sessions.reset(phone)
        replies = self._ticket_messages(ticket)
        replies.insert(1, OutboundMessage.of_text(messages.payment_success_message(ticket.total_price, new_balance)))
        return replies
    
    def abandon(self, phone: str, context: PaymentPendingContext) -> None:
        """Nothing is claimed before payment"""

FLOWS = {
    "hold": HoldFlow,
    "balance": BalanceFlow,
}
