from pydantic_settings import BaseSettings
from typing import Optional
from decimal import Decimal

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./ticketing.db"
    
    # Application
    PROJECT_NAME: str = "WhatsApp Ticketing Chatbot"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    BASE_URL: str = "http://localhost:8000"
    
    # Booking
    BOOKING_FLOW: str = "hold"  # "hold" or "balance"
    RESERVATION_TTL_MINUTES: int = 5
    SESSION_TIMEOUT_MINUTES: int = 30
    SWEEP_INTERVAL_SECONDS: int = 60
    MAX_SEARCH_RESULTS: int = 3
    MAX_TICKETS_PER_BOOKING: int = 10
    DEFAULT_ACCOUNT_BALANCE: Decimal = Decimal("500.00")
    
    # QR codes
    QR_CODE_DIR: str = "static/qr_codes"
    QR_CODE_SIZE: int = 300
    QR_CODE_MARGIN: int = 2
    
    # WhatsApp transport
    WHATSAPP_PROVIDER: str = "twilio"
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_WHATSAPP_NUMBER: str = "whatsapp:+14155238886"
    WHATSAPP_API_URL: str = "https://graph.facebook.com/v18.0"
    WHATSAPP_PHONE_NUMBER_ID: Optional[str] = None
    WHATSAPP_ACCESS_TOKEN: Optional[str] = None
    WEBHOOK_VERIFY_TOKEN: Optional[str] = None
    
    # Admin
    ADMIN_SECRET: Optional[str] = None
    
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    
    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")
    
    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
