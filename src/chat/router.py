from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, HTTPException, status
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from src.config import settings
from src.database import get_db
from src.chat.service import ChatService
from src.messaging.whatsapp import WhatsAppClient, get_transport, parse_incoming_message
from src.utils import is_valid_phone
from src.logger_config import logger

router = APIRouter()

@router.post("/webhook", response_class=PlainTextResponse)
async def receive_message(
    request: Request,
    db: Session = Depends(get_db),
    transport: WhatsAppClient = Depends(get_transport)
):
    """Receive a WhatsApp message from Twilio (form) or the Cloud API (JSON).

    Always answers 200 so the provider does not retry.
    """
    try:
        if request.headers.get("content-type", "").startswith("application/json"):
            body = await request.json()
        else:
            body = dict(await request.form())
        
        inbound = parse_incoming_message(body)
        if not inbound or not inbound.message or not is_valid_phone(inbound.phone):
            logger.warning("Webhook payload without phone or message ignored")
            return "OK"
        
        chat_service = ChatService(db, transport)
        await run_in_threadpool(chat_service.handle_inbound, inbound)
    except Exception:
        logger.exception("Webhook processing error")
    
    return "OK"

@router.get("/webhook", response_class=PlainTextResponse)
def verify_webhook(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge")
):
    """WhatsApp Cloud API webhook verification"""
    
    if mode == "subscribe" and settings.WEBHOOK_VERIFY_TOKEN and token == settings.WEBHOOK_VERIFY_TOKEN:
        logger.info("Webhook verified")
        return challenge or ""
    
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
