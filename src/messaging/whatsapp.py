from typing import Any, Dict, Optional
import httpx

from src.config import settings
from src.messaging.schemas import InboundMessage, SendOutcome, WhatsAppProvider
from src.logger_config import logger
from src.utils import normalize_phone

TWILIO_API_URL = "https://api.twilio.com/2010-04-01"

class WhatsAppError(Exception):
    pass

class WhatsAppClient:
    """Sends WhatsApp messages through Twilio or the WhatsApp Cloud API"""
    
    def __init__(self, provider: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        self.provider = WhatsAppProvider(provider or settings.WHATSAPP_PROVIDER)
        self.http = http_client or httpx.Client(timeout=10.0)
    
    def send(self, phone: str, text: str) -> SendOutcome:
        """Send a text message. Delivery failures are logged and returned, never raised."""
        try:
            if self.provider == WhatsAppProvider.CLOUD:
                message_id = self._send_cloud(phone, {
                    "type": "text",
                    "text": {"preview_url": False, "body": text}
                })
            else:
                message_id = self._send_twilio(phone, {"Body": text})
        except (httpx.HTTPError, WhatsAppError) as e:
            logger.error(f"Failed to send message to {phone}: {e}")
            return SendOutcome(success=False, error=str(e))
        
        logger.info(f"Message sent to {phone} via {self.provider.value}: {message_id}")
        return SendOutcome(success=True, message_id=message_id)
    
    def send_media(self, phone: str, media_url: str, caption: str = "") -> SendOutcome:
        """Send an image by URL. Delivery failures are logged and returned, never raised."""
        try:
            if self.provider == WhatsAppProvider.CLOUD:
                message_id = self._send_cloud(phone, {
                    "type": "image",
                    "image": {"link": media_url, "caption": caption}
                })
            else:
                data = {"MediaUrl": media_url}
                if caption:
                    data["Body"] = caption
                message_id = self._send_twilio(phone, data)
        except (httpx.HTTPError, WhatsAppError) as e:
            logger.error(f"Failed to send media to {phone}: {e}")
            return SendOutcome(success=False, error=str(e))
        
        logger.info(f"Media sent to {phone} via {self.provider.value}: {message_id}")
        return SendOutcome(success=True, message_id=message_id)
    
    def close(self):
        self.http.close()
    
    def _send_twilio(self, phone: str, data: Dict[str, str]) -> str:
        if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
            raise WhatsAppError("Twilio client not configured")
        
        response = self.http.post(
            f"{TWILIO_API_URL}/Accounts/{settings.TWILIO_ACCOUNT_SID}/Messages.json",
            auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
            data={
                "From": settings.TWILIO_WHATSAPP_NUMBER,
                "To": f"whatsapp:+{normalize_phone(phone)}",
                **data
            }
        )
        response.raise_for_status()
        return response.json().get("sid", "")
    
    def _send_cloud(self, phone: str, message: Dict[str, Any]) -> str:
        if not settings.WHATSAPP_PHONE_NUMBER_ID or not settings.WHATSAPP_ACCESS_TOKEN:
            raise WhatsAppError("WhatsApp Cloud API not configured")
        
        response = self.http.post(
            f"{settings.WHATSAPP_API_URL}/{settings.WHATSAPP_PHONE_NUMBER_ID}/messages",
            headers={"Authorization": f"Bearer {settings.WHATSAPP_ACCESS_TOKEN}"},
            json={
                "messaging_product": "whatsapp",
                "recipient_type": "individual",
                "to": normalize_phone(phone),
                **message
            }
        )
        response.raise_for_status()
        messages = response.json().get("messages") or [{}]
        return messages[0].get("id", "")

def parse_twilio_webhook(body: Dict[str, Any]) -> Optional[InboundMessage]:
    phone = normalize_phone(body.get("From") or "")
    if not phone:
        return None
    return InboundMessage(
        phone=phone,
        message=body.get("Body") or "",
        wa_message_id=body.get("MessageSid"),
        provider=WhatsAppProvider.TWILIO
    )

def parse_cloud_webhook(body: Dict[str, Any]) -> Optional[InboundMessage]:
    try:
        message = body["entry"][0]["changes"][0]["value"]["messages"][0]
    except (KeyError, IndexError, TypeError):
        # Status callbacks and other non-message events
        return None
    
    phone = normalize_phone(message.get("from") or "")
    if not phone:
        return None
    return InboundMessage(
        phone=phone,
        message=(message.get("text") or {}).get("body", ""),
        wa_message_id=message.get("id"),
        provider=WhatsAppProvider.CLOUD
    )

def parse_incoming_message(body: Dict[str, Any]) -> Optional[InboundMessage]:
    """Parse a Twilio form post or a Cloud API payload"""
    if "entry" in body:
        return parse_cloud_webhook(body)
    return parse_twilio_webhook(body)

_transport: Optional[WhatsAppClient] = None

def get_transport() -> WhatsAppClient:
    """FastAPI dependency returning the shared WhatsApp client"""
    global _transport
    if _transport is None:
        _transport = WhatsAppClient()
    return _transport
