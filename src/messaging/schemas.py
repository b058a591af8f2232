from pydantic import BaseModel
from typing import Optional
from enum import Enum

class MessageKind(str, Enum):
    TEXT = "text"
    MEDIA = "media"

class WhatsAppProvider(str, Enum):
    TWILIO = "twilio"
    CLOUD = "cloud"

class InboundMessage(BaseModel):
    """A chat message received through the webhook"""
    phone: str
    message: str
    wa_message_id: Optional[str] = None
    provider: WhatsAppProvider

class OutboundMessage(BaseModel):
    """A reply produced by the conversation router"""
    kind: MessageKind = MessageKind.TEXT
    text: Optional[str] = None
    media_url: Optional[str] = None
    caption: Optional[str] = None
    
    @classmethod
    def of_text(cls, text: str) -> "OutboundMessage":
        return cls(kind=MessageKind.TEXT, text=text)
    
    @classmethod
    def of_media(cls, media_url: str, caption: str = "") -> "OutboundMessage":
        return cls(kind=MessageKind.MEDIA, media_url=media_url, caption=caption)

class SendOutcome(BaseModel):
    """Result of a send attempt; failures are reported, never raised"""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
