"""
Admin Module

Secret-protected REST API for operators: event management, booking lookup and
cancellation, a manual expiry sweep and headline metrics.
"""
