"""
Tests for SessionStore: typed per-state context persistence
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from src.events.service import EventService
from src.exceptions import SessionExpired
from src.models import ChatSession
from src.sessions.schemas import (
    BrowsingContext,
    ConversationState,
    EmptyContext,
    HoldPendingContext,
    QuantityChosenContext,
)
from src.sessions.service import SessionStore
from src.utils import now


class TestLoad:
    def test_first_contact_creates_initial_session(self, db):
        session = SessionStore(db).load('9990001')

        assert session.state == ConversationState.INITIAL
        assert isinstance(session.context, EmptyContext)
        assert db.query(ChatSession).count() == 1

    def test_context_missing_required_field_is_expired(self, db):
        # Given: a browsing session whose results were lost
        db.add(ChatSession(phone='9990001', state='BROWSING', context={'keywords': 'jazz'}, last_activity=now()))
        db.commit()

        with pytest.raises(SessionExpired):
            SessionStore(db).load('9990001')

    def test_unknown_state_is_expired(self, db):
        db.add(ChatSession(phone='9990001', state='LEGACY_STATE', context={}, last_activity=now()))
        db.commit()

        with pytest.raises(SessionExpired):
            SessionStore(db).load('9990001')


class TestSave:
    def test_round_trip_through_json(self, db, make_event):
        event = make_event(price=Decimal('250.00'))
        results = EventService(db).search_events('jazz')
        store = SessionStore(db)

        store.save('9990001', ConversationState.BROWSING, {'keywords': 'jazz', 'results': results})
        session = store.load('9990001')

        assert session.state == ConversationState.BROWSING
        assert isinstance(session.context, BrowsingContext)
        assert session.context.results[0].id == event.id
        assert session.context.results[0].price == Decimal('250.00')
        assert session.context.results[0].event_date == event.event_date

    def test_patch_is_merged_and_stale_fields_dropped(self, db, make_event):
        make_event()
        store = SessionStore(db)
        item = EventService(db).search_events('jazz')[0]
        store.save('9990001', ConversationState.BROWSING, {'keywords': 'jazz', 'results': [item]})
        store.save('9990001', ConversationState.ITEM_SELECTED, {'item': item})

        # When: only the new field is sent
        session = store.save('9990001', ConversationState.QUANTITY_CHOSEN, {'quantity': 2})

        # Then: the earlier item survives, the browsing results do not
        assert isinstance(session.context, QuantityChosenContext)
        assert session.context.item.id == item.id
        assert session.context.quantity == 2
        stored = db.query(ChatSession).filter(ChatSession.phone == '9990001').one()
        assert 'results' not in stored.context

    def test_pending_context(self, db, make_event):
        make_event()
        store = SessionStore(db)
        item = EventService(db).search_events('jazz')[0]
        store.save('9990001', ConversationState.QUANTITY_CHOSEN, {'item': item, 'quantity': 1})

        store.save('9990001', ConversationState.HOLD_PENDING, {'user_name': 'John Doe', 'reservation_id': 7})
        session = store.load('9990001')

        assert isinstance(session.context, HoldPendingContext)
        assert session.context.reservation_id == 7
        assert session.context.user_name == 'John Doe'

    def test_reset_clears_context(self, db, make_event):
        make_event()
        store = SessionStore(db)
        item = EventService(db).search_events('jazz')[0]
        store.save('9990001', ConversationState.ITEM_SELECTED, {'item': item})

        session = store.reset('9990001')

        assert session.state == ConversationState.INITIAL
        stored = db.query(ChatSession).filter(ChatSession.phone == '9990001').one()
        assert stored.context == {}


class TestSweepIdle:
    def test_removes_only_idle_sessions(self, db):
        store = SessionStore(db)
        current = now()
        store.save('idle-phone', ConversationState.INITIAL, current_time=current - timedelta(minutes=45))
        store.save('active-phone', ConversationState.INITIAL, current_time=current - timedelta(minutes=5))

        deleted = store.sweep_idle(timeout_minutes=30, current_time=current)

        assert deleted == 1
        assert [s.phone for s in db.query(ChatSession).all()] == ['active-phone']

    def test_touched_session_survives_sweep(self, db):
        # Given: a session last saved 45 minutes ago
        store = SessionStore(db)
        current = now()
        store.save('busy-phone', ConversationState.INITIAL, current_time=current - timedelta(minutes=45))

        # When: a message arrives that does not change the state
        store.touch('busy-phone', current_time=current - timedelta(minutes=1))

        # Then
        assert store.sweep_idle(timeout_minutes=30, current_time=current) == 0
        assert store.load('busy-phone').state == ConversationState.INITIAL
