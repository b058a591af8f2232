from typing import Callable, Dict, List, Optional
from sqlalchemy.orm import Session

from src.config import settings
from src.chat import messages
from src.chat.flows import FLOWS, PaymentFlow
from src.chat.parser import (
    Intent, ParsedMessage, parse_message, extract_search_keywords,
    parse_selection, parse_quantity, parse_user_name, extract_booking_id
)
from src.messaging.schemas import OutboundMessage
from src.sessions.schemas import ConversationState, ConversationSession
from src.sessions.service import SessionStore
from src.events.service import EventService
from src.reservations.service import ReservationManager
from src.bookings.booking_service import BookingFinalizer
from src.bookings.ticket_service import TicketRenderer
from src.exceptions import SessionExpired
from src.logger_config import logger

Handler = Callable[[str, ConversationSession, ParsedMessage], List[OutboundMessage]]

class ConversationRouter:
    """Per-phone booking state machine.

    route() is the single entry point: it parses the message, handles the
    global commands, dispatches on the stored state and returns the replies.
    Any unexpected error resets the conversation and returns an apology.
    """
    
    def __init__(
        self,
        db: Session,
        renderer: Optional[TicketRenderer] = None,
        booking_flow: Optional[str] = None
    ):
        self.db = db
        self.sessions = SessionStore(db)
        self.events = EventService(db)
        self.reservations = ReservationManager(db)
        self.finalizer = BookingFinalizer(db, renderer)
        
        # Every pending state keeps its own flow so a session started under
        # one variant can still finish after the setting changes
        self.flows: Dict[ConversationState, PaymentFlow] = {}
        for flow_class in FLOWS.values():
            flow = flow_class(db, self.sessions, self.finalizer)
            self.flows[flow.pending_state] = flow
        
        flow_name = booking_flow or settings.BOOKING_FLOW
        if flow_name not in FLOWS:
            raise ValueError(f"Unknown booking flow: {flow_name}")
        self.flow = self.flows[FLOWS[flow_name].pending_state]
        
        self._handlers: Dict[ConversationState, Handler] = {
            ConversationState.INITIAL: self._handle_initial,
            ConversationState.BROWSING: self._handle_browsing,
            ConversationState.ITEM_SELECTED: self._handle_item_selected,
            ConversationState.QUANTITY_CHOSEN: self._handle_quantity_chosen,
            ConversationState.HOLD_PENDING: self._handle_pending,
            ConversationState.PAYMENT_PENDING: self._handle_pending,
        }
    
    def route(self, phone: str, raw_message: Optional[str]) -> List[OutboundMessage]:
        """Produce the replies for one inbound message"""
        
        parsed = parse_message(raw_message)
        try:
            return self._dispatch(phone, parsed)
        except Exception:
            logger.exception(f"Routing failed for {phone} on message {parsed.cleaned!r}")
            self.db.rollback()
            self._force_reset(phone)
            return [OutboundMessage.of_text(messages.error_message())]
    
    def _dispatch(self, phone: str, parsed: ParsedMessage) -> List[OutboundMessage]:
        logger.info(f"Message from {phone} ({parsed.intent.value}): {parsed.cleaned!r}")
        
        # Global commands, handled the same in every state
        if parsed.intent == Intent.HELP:
            self._abandon(phone)
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.help_message())]
        
        if parsed.intent == Intent.CANCEL:
            self._abandon(phone)
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.cancel_message())]
        
        # Read-only lookups leave the session untouched
        if parsed.intent == Intent.RETRIEVE_BOOKING:
            return self._retrieve_booking(parsed.cleaned)
        
        if parsed.intent == Intent.MY_BOOKINGS:
            return self._my_bookings(phone)
        
        try:
            session = self.sessions.load(phone)
        except SessionExpired:
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.session_expired_message())]
        
        # Every handled message counts as activity, retries included
        self.sessions.touch(phone)
        return self._handlers[session.state](phone, session, parsed)
    
    # ================================
    # State handlers
    # ================================
    def _handle_initial(self, phone: str, session: ConversationSession, parsed: ParsedMessage) -> List[OutboundMessage]:
        if parsed.is_empty:
            return [OutboundMessage.of_text(messages.welcome_message())]
        
        if parsed.intent == Intent.BOOK:
            return [OutboundMessage.of_text(messages.search_prompt_message())]
        
        if parsed.intent == Intent.SEARCH:
            keywords = extract_search_keywords(parsed.cleaned)
        else:
            keywords = parsed.cleaned
        
        if not keywords:
            return [OutboundMessage.of_text(messages.search_prompt_message())]
        
        results = self.events.search_events(keywords, limit=settings.MAX_SEARCH_RESULTS)
        if not results:
            return [OutboundMessage.of_text(messages.no_results_message(keywords))]
        
        self.sessions.save(phone, ConversationState.BROWSING, {"keywords": keywords, "results": results})
        return [OutboundMessage.of_text(messages.search_results_message(results, keywords))]
    
    def _handle_browsing(self, phone: str, session: ConversationSession, parsed: ParsedMessage) -> List[OutboundMessage]:
        results = session.context.results
        selection = parse_selection(parsed.cleaned)
        
        if selection is None or selection > len(results):
            return [OutboundMessage.of_text(messages.invalid_selection_message(len(results)))]
        
        item = self.events.get_snapshot(results[selection - 1].id)
        if not item:
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.event_unavailable_message())]
        
        self.sessions.save(phone, ConversationState.ITEM_SELECTED, {"item": item})
        return [OutboundMessage.of_text(messages.event_details_message(item))]
    
    def _handle_item_selected(self, phone: str, session: ConversationSession, parsed: ParsedMessage) -> List[OutboundMessage]:
        quantity = parse_quantity(parsed.cleaned)
        if quantity is None:
            return [OutboundMessage.of_text(messages.invalid_quantity_message())]
        
        # Seats may have gone since the event was shown
        item = self.events.get_snapshot(session.context.item.id)
        if not item:
            self.sessions.reset(phone)
            return [OutboundMessage.of_text(messages.event_unavailable_message())]
        
        if item.available_seats < quantity:
            return [OutboundMessage.of_text(messages.insufficient_seats_message(item.available_seats, quantity))]
        
        self.sessions.save(phone, ConversationState.QUANTITY_CHOSEN, {"item": item, "quantity": quantity})
        return [OutboundMessage.of_text(messages.quantity_confirmation_message(item, quantity))]
    
    def _handle_quantity_chosen(self, phone: str, session: ConversationSession, parsed: ParsedMessage) -> List[OutboundMessage]:
        user_name = parse_user_name(parsed.cleaned)
        if not user_name:
            return [OutboundMessage.of_text(messages.invalid_name_message())]
        
        return self.flow.begin(phone, session.context, user_name)
    
    def _handle_pending(self, phone: str, session: ConversationSession, parsed: ParsedMessage) -> List[OutboundMessage]:
        return self.flows[session.state].handle(phone, session.context, parsed.cleaned)
    
    # ================================
    # Global commands
    # ================================
    def _retrieve_booking(self, text: str) -> List[OutboundMessage]:
        booking_id = extract_booking_id(text)
        if not booking_id:
            return [OutboundMessage.of_text(messages.invalid_booking_id_message())]
        
        booking = self.finalizer.get_booking(booking_id)
        if not booking:
            return [OutboundMessage.of_text(messages.booking_not_found_message(booking_id))]
        
        replies = [OutboundMessage.of_text(messages.booking_details_message(booking))]
        if booking.qr_code_url:
            replies.append(OutboundMessage.of_media(booking.qr_code_url, messages.qr_caption(booking_id)))
        return replies
    
    def _my_bookings(self, phone: str) -> List[OutboundMessage]:
        bookings = self.finalizer.get_bookings_by_phone(phone)
        if not bookings:
            return [OutboundMessage.of_text(messages.no_bookings_message())]
        return [OutboundMessage.of_text(messages.my_bookings_message(bookings))]
    
    def _abandon(self, phone: str):
        """Give back anything the current flow has claimed"""
        try:
            session = self.sessions.load(phone)
        except SessionExpired:
            session = None
        
        if session and session.state in self.flows:
            self.flows[session.state].abandon(phone, session.context)
            return
        
        # A hold can outlive its session after an error reset
        hold = self.reservations.get_active_hold(phone)
        if hold:
            self.reservations.cancel(hold.id)
    
    def _force_reset(self, phone: str):
        try:
            self.sessions.reset(phone)
        except Exception:
            self.db.rollback()
            logger.exception(f"Could not reset session for {phone}")
