import re
import secrets
import string
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

BOOKING_ID_PREFIX = "BKG-"
BOOKING_ID_ALPHABET = string.ascii_uppercase + string.digits
BOOKING_ID_LENGTH = 6
BOOKING_ID_PATTERN = re.compile(r"^BKG-[A-Z0-9]{6}$")


def now() -> datetime:
    """Current time as a timezone-naive datetime (matches stored columns)"""
    return datetime.now()


def generate_booking_id() -> str:
    """Generate friendly booking ID (e.g. BKG-57RF1A)"""
    code = "".join(secrets.choice(BOOKING_ID_ALPHABET) for _ in range(BOOKING_ID_LENGTH))
    return f"{BOOKING_ID_PREFIX}{code}"


def is_booking_id(value: str) -> bool:
    return bool(BOOKING_ID_PATTERN.match(value.strip().upper()))


def normalize_phone(phone: str) -> str:
    """Strip the whatsapp: prefix and any non-digit characters"""
    return re.sub(r"\D", "", phone.replace("whatsapp:", ""))


def is_valid_phone(phone: str) -> bool:
    return bool(re.fullmatch(r"\d{10,15}", normalize_phone(phone)))


def sanitize_input(text: Optional[str]) -> str:
    """Trim and collapse runs of whitespace"""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text.strip())


def format_currency(amount: Union[Decimal, float, int]) -> str:
    return f"₹{Decimal(str(amount)):.2f}"


def format_event_date(value: datetime) -> str:
    return value.strftime("%d %B %Y, %I:%M %p")


def format_short_date(value: datetime) -> str:
    return value.strftime("%d %b, %I:%M %p")


def truncate(text: Optional[str], max_length: int = 100) -> str:
    if not text:
        return ""
    return text[:max_length] + "..." if len(text) > max_length else text


def format_time_remaining(expires_at: datetime, current_time: Optional[datetime] = None) -> str:
    """Human readable time left until expires_at"""
    remaining = (expires_at - (current_time or now())).total_seconds()
    if remaining <= 0:
        return "expired"
    minutes, seconds = divmod(int(remaining), 60)
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
