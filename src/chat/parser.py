import re
from typing import Optional
from enum import Enum
from pydantic import BaseModel

from src.config import settings
from src.utils import sanitize_input, BOOKING_ID_PREFIX

NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z .'-]*$")
BOOKING_ID_SEARCH = re.compile(r"BKG-[A-Z0-9]{6}")
SEARCH_PREFIX = re.compile(r"^(search|find|look\s+for|look)\b\s*", re.IGNORECASE)
LEADING_NUMBER = re.compile(r"^(\d+)")

YES_WORDS = {"yes", "y", "confirm", "ok", "sure", "proceed"}
NO_WORDS = {"no", "n", "abort"}

class Intent(str, Enum):
    SEARCH = "SEARCH"
    BOOK = "BOOK"
    CANCEL = "CANCEL"
    HELP = "HELP"
    RETRIEVE_BOOKING = "RETRIEVE_BOOKING"
    MY_BOOKINGS = "MY_BOOKINGS"
    UNKNOWN = "UNKNOWN"

class ParsedMessage(BaseModel):
    original: str
    cleaned: str
    intent: Intent
    is_command: bool
    is_number: bool
    number: Optional[int] = None
    is_empty: bool

def parse_intent(message: str) -> Intent:
    msg = message.strip().upper()
    
    if msg.startswith(("SEARCH", "FIND", "LOOK")):
        return Intent.SEARCH
    if msg in ("BOOK", "BOOKING"):
        return Intent.BOOK
    if msg in ("CANCEL", "STOP"):
        return Intent.CANCEL
    if msg in ("HELP", "MENU", "?"):
        return Intent.HELP
    if msg.startswith(BOOKING_ID_PREFIX):
        return Intent.RETRIEVE_BOOKING
    if msg in ("MY BOOKINGS", "BOOKINGS"):
        return Intent.MY_BOOKINGS
    
    return Intent.UNKNOWN

def parse_message(message: Optional[str]) -> ParsedMessage:
    """Normalize raw chat text and classify it"""
    original = message or ""
    cleaned = sanitize_input(original)
    intent = parse_intent(cleaned)
    number_match = re.search(r"\d+", cleaned)
    
    return ParsedMessage(
        original=original,
        cleaned=cleaned,
        intent=intent,
        is_command=intent != Intent.UNKNOWN,
        is_number=cleaned.isdigit(),
        number=int(number_match.group()) if number_match else None,
        is_empty=len(cleaned) == 0
    )

def extract_search_keywords(message: str) -> str:
    return SEARCH_PREFIX.sub("", sanitize_input(message), count=1).strip()

def _leading_int(message: str) -> Optional[int]:
    match = LEADING_NUMBER.match(message.strip())
    return int(match.group(1)) if match else None

def parse_selection(message: str) -> Optional[int]:
    """1-based list selection; upper bound is checked against the stored results"""
    number = _leading_int(message)
    if number is None or number < 1:
        return None
    return number

def parse_quantity(message: str, max_quantity: Optional[int] = None) -> Optional[int]:
    max_quantity = max_quantity or settings.MAX_TICKETS_PER_BOOKING
    number = _leading_int(message)
    if number is None or number < 1 or number > max_quantity:
        return None
    return number

def parse_user_name(message: str) -> Optional[str]:
    cleaned = sanitize_input(message)
    if len(cleaned) < 2 or len(cleaned) > 50:
        return None
    if not NAME_PATTERN.match(cleaned):
        return None
    return cleaned

def extract_booking_id(message: str) -> Optional[str]:
    match = BOOKING_ID_SEARCH.search(message.strip().upper())
    return match.group() if match else None

def parse_confirmation(message: str) -> Optional[bool]:
    """True for yes words, False for no words, None when unclear"""
    cleaned = message.strip().lower()
    if cleaned in YES_WORDS:
        return True
    if cleaned in NO_WORDS:
        return False
    return None
