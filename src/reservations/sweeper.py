from typing import Callable, Optional
from datetime import datetime
from pydantic import BaseModel
from sqlalchemy.orm import Session
import threading

from src.config import settings
from src.database import SessionLocal
from src.reservations.service import ReservationManager
from src.sessions.service import SessionStore
from src.logger_config import logger

class SweepResult(BaseModel):
    ran: bool
    expired_holds: int = 0
    idle_sessions: int = 0

class ExpirySweeper:
    """Periodically expires stale holds and removes idle sessions in the background"""
    
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        interval_seconds: Optional[int] = None
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds or settings.SWEEP_INTERVAL_SECONDS
        self._sweep_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sweeper_thread = None
    
    def start(self):
        """Start sweeping in background"""
        if self._sweeper_thread and self._sweeper_thread.is_alive():
            return
        self._stop_event.clear()
        self._sweeper_thread = threading.Thread(target=self._sweep_loop, name="expiry-sweeper")
        self._sweeper_thread.daemon = True
        self._sweeper_thread.start()
        logger.info(f"Expiry sweeper started, every {self.interval_seconds}s")
    
    def stop(self):
        """Stop sweeping"""
        self._stop_event.set()
        if self._sweeper_thread:
            self._sweeper_thread.join(timeout=5)
            self._sweeper_thread = None
        logger.info("Expiry sweeper stopped")
    
    def run_once(self, current_time: Optional[datetime] = None, db: Optional[Session] = None) -> SweepResult:
        """Run one sweep unless another is in progress. A passed-in session is not closed."""
        
        if not self._sweep_lock.acquire(blocking=False):
            logger.info("Sweep already in progress, skipping")
            return SweepResult(ran=False)
        
        owns_session = db is None
        try:
            if owns_session:
                db = self.session_factory()
            try:
                expired_holds = ReservationManager(db).sweep_expired(current_time=current_time)
                idle_sessions = SessionStore(db).sweep_idle(current_time=current_time)
            finally:
                if owns_session:
                    db.close()
        finally:
            self._sweep_lock.release()
        
        return SweepResult(ran=True, expired_holds=expired_holds, idle_sessions=idle_sessions)
    
    def _sweep_loop(self):
        """Main sweep loop"""
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Error in expiry sweep")
            
            self._stop_event.wait(self.interval_seconds)

sweeper = ExpirySweeper()
