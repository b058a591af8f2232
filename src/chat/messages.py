"""Chat replies sent by the conversation router"""

from typing import List
from decimal import Decimal

from src.config import settings
from src.events.schemas import EventSnapshot
from src.reservations.schemas import ActiveHold
from src.bookings.schemas import BookingDetails, Ticket
from src.utils import (
    format_currency, format_event_date, format_short_date,
    format_time_remaining, truncate
)

DIVIDER = "━━━━━━━━━━━━━━━━"

# ================================
# Menu & help
# ================================
def welcome_message() -> str:
    return (
        "👋 *Welcome to the Ticket Booking Bot!*\n\n"
        "Find events and book tickets right here on WhatsApp.\n\n"
        "*To get started:*\n"
        "Type what you are looking for, e.g. \"search jazz\" or \"mumbai\".\n\n"
        "Or type *HELP* for all options."
    )

def help_message() -> str:
    return (
        "🎫 *Ticket Booking Bot - Help*\n\n"
        "*🔍 SEARCH*\n"
        "Send: \"search [event/city/venue]\"\n"
        "Example: \"search comedy\" or \"search bangalore\"\n\n"
        "*📋 MY BOOKINGS*\n"
        "Send: \"my bookings\"\n\n"
        "*🎟️ RETRIEVE TICKET*\n"
        "Send your booking ID\n"
        "Example: \"BKG-57RF1A\"\n\n"
        "*❌ CANCEL*\n"
        "Send: \"cancel\" to stop the current booking\n\n"
        "*❓ HELP*\n"
        "Send: \"help\" to show this menu"
    )

def cancel_message() -> str:
    return (
        "❌ Booking cancelled.\n\n"
        "Any seats held for you have been released.\n"
        "Type *SEARCH* to start again or *HELP* for options."
    )

def error_message() -> str:
    return (
        "😕 Oops! Something went wrong.\n\n"
        "Please try again or type *HELP* for assistance."
    )

def session_expired_message() -> str:
    return (
        "⏰ Your session has expired.\n\n"
        "Please start again by searching for an event.\n"
        "Example: \"search concerts\""
    )

# ================================
# Search & selection
# ================================
def search_prompt_message() -> str:
    return (
        "🔍 *Search Events*\n\n"
        "What are you looking for?\n\n"
        "Examples:\n"
        "• \"concert\"\n"
        "• \"mumbai\"\n"
        "• \"stand-up comedy\"\n\n"
        "Type your search:"
    )

def search_results_message(results: List[EventSnapshot], keywords: str) -> str:
    lines = [f"🔍 *Results for \"{keywords}\"*", "", f"Found {len(results)} event(s):", ""]
    for index, event in enumerate(results, start=1):
        lines.append(f"*{index}. {event.title}*")
        lines.append(f"📍 {event.venue}, {event.city}")
        lines.append(f"📅 {format_event_date(event.event_date)}")
        lines.append(f"💰 {format_currency(event.price)} per ticket")
        lines.append(f"🎫 {event.available_seats} seats available")
        if event.description:
            lines.append(f"ℹ️ {truncate(event.description, 80)}")
        lines.append("")
    lines.append(f"Reply with the number (1-{len(results)}) to book.")
    return "\n".join(lines)

def no_results_message(keywords: str) -> str:
    return (
        f"😕 No events found for \"{keywords}\"\n\n"
        "Try:\n"
        "• An event name or artist\n"
        "• A city or venue\n\n"
        "Or type *HELP* to see all options."
    )

def invalid_selection_message(max_number: int) -> str:
    return (
        "❌ Invalid selection.\n\n"
        f"Please reply with a number between 1 and {max_number}.\n"
        "Or type *CANCEL* to start over."
    )

def event_details_message(event: EventSnapshot) -> str:
    lines = [f"🎭 *{event.title}*", ""]
    if event.description:
        lines.extend([event.description, ""])
    lines.extend([
        f"📍 *Venue:* {event.venue}, {event.city}",
        f"📅 *Date:* {format_event_date(event.event_date)}",
        f"💰 *Price:* {format_currency(event.price)} per ticket",
        f"🎫 *Available Seats:* {event.available_seats}",
        "",
        DIVIDER,
        "",
        f"How many tickets would you like? (1-{settings.MAX_TICKETS_PER_BOOKING})"
    ])
    return "\n".join(lines)

def event_unavailable_message() -> str:
    return "❌ This event is no longer available. Please search again."

# ================================
# Quantity, name & hold
# ================================
def invalid_quantity_message() -> str:
    return (
        "❌ *Invalid Quantity*\n\n"
        f"Please enter a number between 1 and {settings.MAX_TICKETS_PER_BOOKING}.\n"
        "How many tickets would you like?"
    )

def insufficient_seats_message(available: int, requested: int) -> str:
    return (
        "❌ *Not Enough Seats*\n\n"
        f"You requested {requested} ticket(s), but only {available} seat(s) are available.\n\n"
        "Please try a smaller quantity, or type *CANCEL* to start over."
    )

def quantity_confirmation_message(event: EventSnapshot, quantity: int) -> str:
    return (
        f"✅ *Quantity Selected: {quantity} ticket(s)*\n\n"
        f"🎭 Event: {event.title}\n"
        f"📍 Location: {event.city}\n"
        f"📅 Date: {format_event_date(event.event_date)}\n"
        f"💰 Price per ticket: {format_currency(event.price)}\n\n"
        f"*Total: {format_currency(event.price * quantity)}*\n\n"
        f"{DIVIDER}\n\n"
        "Please reply with your *full name* for the booking.\n"
        "Example: \"John Doe\""
    )

def invalid_name_message() -> str:
    return (
        "❌ *Invalid Name*\n\n"
        "Please enter a valid name:\n"
        "• 2-50 characters\n"
        "• Letters and spaces only\n\n"
        "Example: \"John Doe\"\n\n"
        "What's your full name?"
    )

def hold_summary_message(user_name: str, hold: ActiveHold) -> str:
    return (
        "📝 *Booking Summary*\n\n"
        f"👤 Name: {user_name}\n"
        f"🎭 Event: {hold.title}\n"
        f"📍 Venue: {hold.venue}, {hold.city}\n"
        f"📅 Date: {format_event_date(hold.event_date)}\n"
        f"🎫 Tickets: {hold.quantity}\n"
        f"💰 Total: {format_currency(hold.total_price)}\n\n"
        f"⏱️ Seats held for: {format_time_remaining(hold.expires_at)}\n\n"
        f"{DIVIDER}\n\n"
        "Reply *YES* to confirm or *NO* to cancel."
    )

def hold_failed_message(reason: str) -> str:
    return f"❌ Reservation failed: {reason}\n\nPlease search again."

def reservation_expired_message() -> str:
    return (
        "⏰ *Reservation Expired*\n\n"
        "Your seat reservation has expired and the seats have been released.\n\n"
        "Type *SEARCH* to start over."
    )

def confirmation_prompt_message() -> str:
    return "❌ Please reply *YES* to confirm or *NO* to cancel."

# ================================
# Balance payment
# ================================
def payment_summary_message(
    user_name: str,
    event: EventSnapshot,
    quantity: int,
    balance: Decimal,
    total: Decimal
) -> str:
    lines = [
        "📋 *Confirm Booking Details*",
        "",
        f"👤 Name: {user_name}",
        f"🎭 Event: {event.title}",
        f"📍 Venue: {event.venue}, {event.city}",
        f"📅 Date: {format_event_date(event.event_date)}",
        f"🎫 Tickets: {quantity}",
        f"💰 Total: {format_currency(total)}",
        "",
        DIVIDER,
        "",
        "💳 *Your Balance*",
        f"Current: {format_currency(balance)}",
    ]
    if balance >= total:
        lines.extend([
            f"After deduction: {format_currency(balance - total)}",
            "",
            "Reply *YES* to confirm and pay",
            "Reply *NO* to cancel"
        ])
    else:
        lines.extend([
            f"Shortfall: {format_currency(total - balance)}",
            "",
            "❌ Insufficient balance!",
            "Please recharge your account and try again.",
            "Type *CANCEL* to exit."
        ])
    return "\n".join(lines)

def insufficient_balance_message(balance: Decimal, required: Decimal) -> str:
    return (
        "❌ *Payment Failed*\n\n"
        f"Your balance of {format_currency(balance)} does not cover {format_currency(required)}.\n\n"
        "Please recharge your account and try again."
    )

def payment_success_message(amount: Decimal, new_balance: Decimal) -> str:
    return (
        "✅ Payment successful!\n"
        f"💰 Amount deducted: {format_currency(amount)}\n"
        f"💳 Remaining balance: {format_currency(new_balance)}"
    )

# ================================
# Tickets & bookings
# ================================
def ticket_confirmation_message(ticket: Ticket) -> str:
    return (
        "🎉 *BOOKING CONFIRMED!*\n\n"
        f"📋 *Booking ID:* {ticket.booking_id}\n"
        f"🎭 *Event:* {ticket.event_title}\n"
        f"📍 *Venue:* {ticket.venue}, {ticket.city}\n"
        f"📅 *Date:* {format_event_date(ticket.event_date)}\n"
        f"👤 *Name:* {ticket.user_name}\n"
        f"🎫 *Tickets:* {ticket.quantity}\n"
        f"💰 *Total:* {format_currency(ticket.total_price)}\n\n"
        "*Important:*\n"
        f"• Save your Booking ID: *{ticket.booking_id}*\n"
        "• Show the QR code at the venue entrance\n\n"
        f"To view this booking again, send: *{ticket.booking_id}*"
    )

def qr_caption(booking_id: str) -> str:
    return f"QR Code for {booking_id}"

def booking_details_message(booking: BookingDetails) -> str:
    return (
        "🎟️ *Booking Details*\n\n"
        f"📋 *Booking ID:* {booking.booking_id}\n"
        f"🎭 *Event:* {booking.title}\n"
        f"📍 *Venue:* {booking.venue}, {booking.city}\n"
        f"📅 *Date:* {format_event_date(booking.event_date)}\n"
        f"👤 *Name:* {booking.user_name}\n"
        f"🎫 *Tickets:* {booking.quantity}\n"
        f"💰 *Total:* {format_currency(booking.total_price)}\n"
        f"📌 *Status:* {booking.status.value.upper()}"
    )

def invalid_booking_id_message() -> str:
    return "❌ Invalid booking ID format.\n\nExample: BKG-57RF1A"

def booking_not_found_message(booking_id: str) -> str:
    return f"❌ Booking {booking_id} not found.\n\nPlease check the ID and try again."

def no_bookings_message() -> str:
    return "📭 You have no bookings yet.\n\nType *SEARCH* to find events!"

def my_bookings_message(bookings: List[BookingDetails]) -> str:
    lines = [f"📋 *Your Bookings ({len(bookings)})*", ""]
    for index, booking in enumerate(bookings, start=1):
        lines.append(f"{index}. *{booking.booking_id}*")
        lines.append(f"   🎭 {booking.title}")
        lines.append(f"   📅 {format_short_date(booking.event_date)}")
        lines.append(f"   🎫 {booking.quantity} ticket(s) • {format_currency(booking.total_price)}")
        lines.append("")
    lines.append(DIVIDER)
    lines.append("")
    lines.append(f"To view details, send the booking ID.\nExample: {bookings[0].booking_id}")
    return "\n".join(lines)
