"""
Test Configuration and Fixtures

This module provides:
- Test environment variables, set before any application module reads settings
- A fresh in-memory SQLite database per test
- Factories for events and the fakes standing in for WhatsApp and QR rendering
- A FastAPI TestClient wired to the test database and fake transport
"""

# =============================================================================
# Environment setup MUST happen before any src import: settings, the engine
# and the loguru sinks are all created at import time
# =============================================================================
import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix='ticketing_test_')

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['LOG_DIR'] = os.path.join(_TEST_DIR, 'logs')
os.environ['QR_CODE_DIR'] = os.path.join(_TEST_DIR, 'qr_codes')
os.environ['BASE_URL'] = 'http://testserver'
os.environ['ADMIN_SECRET'] = 'test-admin-secret'
os.environ['WEBHOOK_VERIFY_TOKEN'] = 'test-verify-token'
os.environ['BOOKING_FLOW'] = 'hold'
os.environ['LOG_LEVEL'] = 'DEBUG'

from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.database import Base, get_db
import src.models  # noqa: F401
from src.models import Event
from src.bookings.schemas import QRArtifact, QRPayload
from src.bookings.ticket_service import TicketRenderer
from src.messaging.schemas import SendOutcome
from src.messaging.whatsapp import get_transport
from src.utils import now


# =============================================================================
# Database
# =============================================================================
@pytest.fixture
def engine():
    test_engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_event(db):
    """Factory creating an active event with every seat available by default"""

    def _make_event(
        title: str = 'Jazz by the Bay',
        city: str = 'Mumbai',
        venue: str = 'Royal Opera House',
        total_seats: int = 5,
        available_seats: Optional[int] = None,
        price: Decimal = Decimal('100.00'),
        days_ahead: int = 7,
        description: Optional[str] = 'Live jazz standards',
        is_active: bool = True,
    ) -> Event:
        event = Event(
            title=title,
            description=description,
            city=city,
            venue=venue,
            event_date=now().replace(microsecond=0) + timedelta(days=days_ahead),
            total_seats=total_seats,
            available_seats=total_seats if available_seats is None else available_seats,
            price=price,
            is_active=is_active,
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    return _make_event


# =============================================================================
# Fakes
# =============================================================================
class FakeTransport:
    """Records every send; can be told to fail"""

    def __init__(self):
        self.sent: List[dict] = []
        self.fail = False

    def send(self, phone: str, text: str) -> SendOutcome:
        self.sent.append({'phone': phone, 'kind': 'text', 'text': text})
        if self.fail:
            return SendOutcome(success=False, error='delivery failed')
        return SendOutcome(success=True, message_id=f'SM{len(self.sent)}')

    def send_media(self, phone: str, media_url: str, caption: str = '') -> SendOutcome:
        self.sent.append({'phone': phone, 'kind': 'media', 'url': media_url, 'caption': caption})
        if self.fail:
            return SendOutcome(success=False, error='delivery failed')
        return SendOutcome(success=True, message_id=f'SM{len(self.sent)}')

    def texts(self) -> List[str]:
        return [message['text'] for message in self.sent if message['kind'] == 'text']


class FakeRenderer(TicketRenderer):
    """Skips image rendering and returns a predictable URL"""

    def __init__(self, fail: bool = False):
        super().__init__(qr_code_dir=os.environ['QR_CODE_DIR'], base_url='http://testserver')
        self.fail = fail
        self.rendered: List[QRPayload] = []

    def render(self, payload: QRPayload) -> QRArtifact:
        if self.fail:
            raise OSError('disk full')
        self.rendered.append(payload)
        return QRArtifact(url=f'{self.base_url}/qr/{payload.booking_id}.png')


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


# =============================================================================
# HTTP
# =============================================================================
@pytest.fixture
def client(db, fake_transport):
    from src.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transport] = lambda: fake_transport
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {'Authorization': 'Bearer test-admin-secret'}
