from typing import List, Optional
from sqlalchemy.orm import Session

from src.chat.conversation import ConversationRouter
from src.messaging.schemas import InboundMessage, MessageKind, OutboundMessage, SendOutcome
from src.messaging.whatsapp import WhatsAppClient
from src.bookings.ticket_service import TicketRenderer
from src.logger_config import logger

class ChatService:
    """Routes an inbound message and delivers the replies"""
    
    def __init__(self, db: Session, transport: WhatsAppClient, renderer: Optional[TicketRenderer] = None):
        self.router = ConversationRouter(db, renderer=renderer)
        self.transport = transport
    
    def handle_inbound(self, inbound: InboundMessage) -> List[SendOutcome]:
        replies = self.router.route(inbound.phone, inbound.message)
        return self.deliver(inbound.phone, replies)
    
    def deliver(self, phone: str, replies: List[OutboundMessage]) -> List[SendOutcome]:
        """Send replies in order. A failed send is logged; state changes already made stand."""
        outcomes = []
        for reply in replies:
            if reply.kind == MessageKind.MEDIA:
                outcome = self.transport.send_media(phone, reply.media_url, reply.caption or "")
            else:
                outcome = self.transport.send(phone, reply.text)
            
            if not outcome.success:
                logger.warning(f"Reply to {phone} not delivered ({reply.kind.value}): {outcome.error}")
            outcomes.append(outcome)
        return outcomes
