from typing import Any, Dict, Optional
from datetime import datetime, timedelta
from pydantic import ValidationError
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from src.config import settings
from src.models import ChatSession
from src.sessions.schemas import ConversationState, ConversationSession, CONTEXT_MODELS
from src.exceptions import SessionExpired
from src.logger_config import logger
from src.utils import now

class SessionStore:
    """Loads and persists per-phone conversation sessions"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def load(self, phone: str) -> ConversationSession:
        """Get or create the phone's session.

        Raises SessionExpired when the stored context no longer fits the stored
        state (e.g. a stale or partially cleared conversation).
        """
        row = self._get_or_create(phone)
        
        try:
            state = ConversationState(row.state)
            context = CONTEXT_MODELS[state].model_validate(row.context or {})
        except (ValueError, ValidationError) as e:
            logger.warning(f"Session for {phone} in state {row.state} has invalid context: {e}")
            raise SessionExpired()
        
        return ConversationSession(
            phone=row.phone,
            state=state,
            context=context,
            last_activity=row.last_activity
        )
    
    def save(
        self,
        phone: str,
        state: ConversationState,
        context_patch: Optional[Dict[str, Any]] = None,
        current_time: Optional[datetime] = None
    ) -> ConversationSession:
        """Shallow-merge context_patch into the stored context and move to state.

        Only the fields valid for the new state are kept.
        """
        row = self._get_or_create(phone)
        previous_state = row.state
        
        merged = dict(row.context or {})
        merged.update(context_patch or {})
        context = CONTEXT_MODELS[state].model_validate(merged)
        
        row.state = state.value
        row.context = context.model_dump(mode="json")
        row.last_activity = current_time or now()
        self.db.commit()
        
        if previous_state != state.value:
            logger.info(f"Session {phone}: {previous_state} -> {state.value}")
        
        return ConversationSession(
            phone=phone,
            state=state,
            context=context,
            last_activity=row.last_activity
        )
    
    def reset(self, phone: str, current_time: Optional[datetime] = None) -> ConversationSession:
        return self.save(phone, ConversationState.INITIAL, current_time=current_time)

    def touch(self, phone: str, current_time: Optional[datetime] = None):
        """Mark the session active without changing its state or context"""
        row = self._get_or_create(phone)
        row.last_activity = current_time or now()
        self.db.commit()
    
    def sweep_idle(self, timeout_minutes: Optional[int] = None, current_time: Optional[datetime] = None) -> int:
        """Delete sessions idle longer than the timeout"""
        
        timeout_minutes = timeout_minutes or settings.SESSION_TIMEOUT_MINUTES
        cutoff = (current_time or now()) - timedelta(minutes=timeout_minutes)
        
        deleted = self.db.query(ChatSession).filter(
            ChatSession.last_activity <= cutoff
        ).delete(synchronize_session=False)
        self.db.commit()
        
        if deleted:
            logger.info(f"Removed {deleted} idle session(s)")
        return deleted
    
    def _get_or_create(self, phone: str) -> ChatSession:
        row = self.db.query(ChatSession).filter(ChatSession.phone == phone).first()
        if row:
            return row
        
        row = ChatSession(
            phone=phone,
            state=ConversationState.INITIAL.value,
            context={},
            last_activity=now()
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            # First messages from the same phone raced to create the session
            self.db.rollback()
            row = self.db.query(ChatSession).filter(ChatSession.phone == phone).one()
        else:
            logger.info(f"New session for {phone}")
        return row
