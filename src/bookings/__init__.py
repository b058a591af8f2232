"""
Booking & Ticketing Module

Turns a confirmed seat hold (or a paid balance flow) into a permanent booking:

- booking_service.py: BookingFinalizer - friendly BKG- ids, booking rows, cancellation
- ticket_service.py: TicketRenderer - QR code rendering and storage
- router.py: serves rendered QR images
- schemas.py: Pydantic models for bookings, tickets and the QR payload
"""

from .router import router
from .booking_service import BookingFinalizer
from .ticket_service import TicketRenderer
from .schemas import BookingStatus, BookingDetails, QRPayload, QRArtifact, Ticket

__all__ = [
    "router",
    "BookingFinalizer",
    "TicketRenderer",
    "BookingStatus",
    "BookingDetails",
    "QRPayload",
    "QRArtifact",
    "Ticket"
]
