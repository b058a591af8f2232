"""Shared exceptions for the application."""


class DomainError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(DomainError):
    def __init__(self, message: str):
        super().__init__(message, 404)


class InsufficientSeats(DomainError):
    def __init__(self, message: str = "Insufficient seats available", available: int = 0):
        self.available = available
        super().__init__(message, 409)


class ReservationFailed(InsufficientSeats):
    """The seat decrement lost a race with another hold or booking."""

    def __init__(self, message: str = "Failed to reserve seats"):
        super().__init__(message)


class InsufficientBalance(DomainError):
    def __init__(self, balance, required):
        self.balance = balance
        self.required = required
        super().__init__(f"Insufficient balance: {balance} available, {required} required", 402)


class SessionExpired(DomainError):
    def __init__(self, message: str = "Session expired"):
        super().__init__(message, 410)
