"""
Reservation Module

Time-limited seat holds: creation, confirmation, cancellation and the periodic
expiry sweep that returns abandoned seats to the event.
"""
