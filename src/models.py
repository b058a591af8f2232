from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Text, ForeignKey, Numeric, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base

# ================================
# Events & Seat Counters
# ================================
class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="ck_events_available_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="ck_events_available_within_total"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    city = Column(String(100), nullable=False, index=True)
    venue = Column(String(255), nullable=False)
    event_date = Column(DateTime, nullable=False, index=True)
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    reservations = relationship("Reservation", back_populates="event")
    bookings = relationship("Booking", back_populates="event")

# ================================
# Reservations (temporary seat holds)
# ================================
class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    phone = Column(String(20), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="active", index=True)
    reserved_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    # Relationships
    event = relationship("Event", back_populates="reservations")

# ================================
# Bookings (confirmed tickets)
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(String(10), unique=True, nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    phone = Column(String(20), nullable=False, index=True)
    user_name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="confirmed", index=True)
    qr_code_data = Column(Text)
    qr_code_url = Column(String(500))
    created_at = Column(DateTime, nullable=False)

    # Relationships
    event = relationship("Event", back_populates="bookings")

# ================================
# Conversation Sessions
# ================================
class ChatSession(Base):
    __tablename__ = "chat_sessions"

    phone = Column(String(20), primary_key=True)
    state = Column(String(30), nullable=False, default="INITIAL")
    context = Column(JSON, nullable=False, default=dict)
    last_activity = Column(DateTime, nullable=False, index=True)

# ================================
# Metro Accounts (balance ledger)
# ================================
class MetroAccount(Base):
    __tablename__ = "metro_accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_metro_accounts_balance_non_negative"),
    )

    phone = Column(String(20), primary_key=True)
    name = Column(String(100))
    balance = Column(Numeric(10, 2), nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    transactions = relationship("AccountTransaction", back_populates="account")

class AccountTransaction(Base):
    __tablename__ = "account_transactions"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    phone = Column(String(20), ForeignKey("metro_accounts.phone"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    transaction_type = Column(String(20), nullable=False)
    description = Column(Text)
    booking_id = Column(String(10), index=True)
    balance_after = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    account = relationship("MetroAccount", back_populates="transactions")
