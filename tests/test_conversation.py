"""
Tests for ConversationRouter: the per-phone booking state machine (hold flow)
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from src.chat.conversation import ConversationRouter
from src.messaging.schemas import MessageKind
from src.models import Booking, ChatSession, Reservation
from src.reservations.schemas import ReservationStatus
from src.sessions.schemas import ConversationState
from src.sessions.service import SessionStore
from src.utils import now

PHONE = '919990001001'


@pytest.fixture
def router(db, fake_renderer):
    return ConversationRouter(db, renderer=fake_renderer, booking_flow='hold')


def _texts(replies):
    return [reply.text for reply in replies if reply.kind == MessageKind.TEXT]


def _state(db, phone=PHONE):
    db.expire_all()
    return SessionStore(db).load(phone).state


def _walk_to_hold(router, keywords='jazz', selection='1', quantity='2', name='John Doe'):
    router.route(PHONE, keywords)
    router.route(PHONE, selection)
    router.route(PHONE, quantity)
    return router.route(PHONE, name)


class TestInitialState:
    def test_empty_message_gets_welcome(self, db, router):
        replies = router.route(PHONE, '   ')

        assert 'Welcome' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL

    def test_book_asks_for_search(self, db, router):
        replies = router.route(PHONE, 'book')

        assert 'Search Events' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL

    def test_free_text_searches(self, db, router, make_event):
        make_event(title='Jazz by the Bay')

        replies = router.route(PHONE, 'jazz')

        assert 'Jazz by the Bay' in _texts(replies)[0]
        assert _state(db) == ConversationState.BROWSING

    def test_search_command_strips_keyword(self, db, router, make_event):
        make_event(title='Comedy Nights', city='Bangalore')

        replies = router.route(PHONE, 'search bangalore')

        assert 'Results for "bangalore"' in _texts(replies)[0]
        assert _state(db) == ConversationState.BROWSING

    def test_no_results_stays_initial(self, db, router, make_event):
        make_event(title='Jazz by the Bay')

        replies = router.route(PHONE, 'search cricket')

        assert 'No events found' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL

    def test_wildcard_search_lists_nothing(self, db, router, make_event):
        make_event()

        replies = router.route(PHONE, '%')

        assert 'No events found' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL

    def test_sold_out_events_are_not_listed(self, db, router, make_event):
        make_event(title='Jazz by the Bay', available_seats=0)

        router.route(PHONE, 'jazz')

        assert _state(db) == ConversationState.INITIAL

    def test_results_limited(self, db, router, make_event):
        for day in range(5):
            make_event(title=f'Jazz Night {day}', days_ahead=day + 1)

        router.route(PHONE, 'jazz')

        session = SessionStore(db).load(PHONE)
        assert len(session.context.results) == 3
        assert session.context.results[0].title == 'Jazz Night 0'


class TestBrowsingState:
    def test_out_of_range_selection_stays_browsing(self, db, router, make_event):
        # Given: three stored results
        for day in range(3):
            make_event(title=f'Jazz Night {day}', days_ahead=day + 1)
        router.route(PHONE, 'jazz')

        # When
        replies = router.route(PHONE, '9')

        # Then
        assert 'Invalid selection' in _texts(replies)[0]
        assert 'between 1 and 3' in _texts(replies)[0]
        assert _state(db) == ConversationState.BROWSING

    def test_non_numeric_selection_stays_browsing(self, db, router, make_event):
        make_event()
        router.route(PHONE, 'jazz')

        replies = router.route(PHONE, 'the first one')

        assert 'Invalid selection' in _texts(replies)[0]
        assert _state(db) == ConversationState.BROWSING

    def test_valid_selection_shows_details(self, db, router, make_event):
        make_event(title='Jazz by the Bay', venue='Royal Opera House')
        router.route(PHONE, 'jazz')

        replies = router.route(PHONE, '1')

        assert 'Royal Opera House' in _texts(replies)[0]
        assert _state(db) == ConversationState.ITEM_SELECTED

    def test_retry_counts_as_activity(self, db, router, make_event):
        # Given: a browsing session whose last state change was 40 minutes ago
        make_event()
        router.route(PHONE, 'jazz')
        db.query(ChatSession).update({ChatSession.last_activity: now() - timedelta(minutes=40)})
        db.commit()

        # When: the user keeps answering with invalid selections
        router.route(PHONE, 'abc')

        # Then: the session is not idle
        db.expire_all()
        assert db.query(ChatSession).one().last_activity > now() - timedelta(minutes=1)
        assert SessionStore(db).sweep_idle(timeout_minutes=30) == 0
        assert _state(db) == ConversationState.BROWSING

    def test_event_withdrawn_after_search(self, db, router, make_event):
        event = make_event()
        router.route(PHONE, 'jazz')
        event.is_active = False
        db.commit()

        replies = router.route(PHONE, '1')

        assert 'no longer available' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL


class TestItemSelectedState:
    def test_invalid_quantity_reprompts(self, db, router, make_event):
        make_event()
        router.route(PHONE, 'jazz')
        router.route(PHONE, '1')

        for text in ('0', '11', 'many'):
            replies = router.route(PHONE, text)
            assert 'Invalid Quantity' in _texts(replies)[0]
        assert _state(db) == ConversationState.ITEM_SELECTED

    def test_quantity_checked_against_live_seats(self, db, router, make_event):
        # Given: the event had 5 seats when shown
        event = make_event(total_seats=5)
        router.route(PHONE, 'jazz')
        router.route(PHONE, '1')

        # When: someone else takes 4 before the quantity arrives
        event.available_seats = 1
        db.commit()
        replies = router.route(PHONE, '2')

        # Then
        assert 'only 1 seat(s)' in _texts(replies)[0]
        assert _state(db) == ConversationState.ITEM_SELECTED

    def test_valid_quantity_asks_for_name(self, db, router, make_event):
        make_event(price=Decimal('100.00'))
        router.route(PHONE, 'jazz')
        router.route(PHONE, '1')

        replies = router.route(PHONE, '2')

        assert '₹200.00' in _texts(replies)[0]
        assert _state(db) == ConversationState.QUANTITY_CHOSEN


class TestQuantityChosenState:
    def test_invalid_name_reprompts(self, db, router, make_event):
        make_event()
        router.route(PHONE, 'jazz')
        router.route(PHONE, '1')
        router.route(PHONE, '2')

        replies = router.route(PHONE, 'R2D2')

        assert 'Invalid Name' in _texts(replies)[0]
        assert _state(db) == ConversationState.QUANTITY_CHOSEN
        assert db.query(Reservation).count() == 0

    def test_valid_name_creates_hold(self, db, router, make_event):
        event = make_event(total_seats=5)

        replies = _walk_to_hold(router)

        assert 'Booking Summary' in _texts(replies)[0]
        assert _state(db) == ConversationState.HOLD_PENDING
        db.refresh(event)
        assert event.available_seats == 3
        session = SessionStore(db).load(PHONE)
        assert session.context.user_name == 'John Doe'
        assert session.context.reservation_id == db.query(Reservation).one().id

    def test_hold_failure_resets(self, db, router, make_event):
        # Given: seats vanish between quantity and name
        event = make_event(total_seats=5)
        router.route(PHONE, 'jazz')
        router.route(PHONE, '1')
        router.route(PHONE, '2')
        event.available_seats = 1
        db.commit()

        # When
        replies = router.route(PHONE, 'John Doe')

        # Then
        assert 'Reservation failed' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL
        db.refresh(event)
        assert event.available_seats == 1


class TestHoldPendingState:
    def test_yes_books_and_sends_qr(self, db, router, make_event):
        event = make_event(total_seats=5, price=Decimal('100.00'))
        _walk_to_hold(router)

        replies = router.route(PHONE, 'YES')

        booking = db.query(Booking).one()
        assert booking.total_price == Decimal('200.00')
        assert booking.phone == PHONE
        assert 'BOOKING CONFIRMED' in replies[0].text
        assert booking.booking_id in replies[0].text
        assert replies[1].kind == MessageKind.MEDIA
        assert replies[1].media_url.endswith(f'{booking.booking_id}.png')
        assert _state(db) == ConversationState.INITIAL
        db.refresh(event)
        assert event.available_seats == 3
        assert db.query(Reservation).one().status == ReservationStatus.CONFIRMED.value

    def test_no_cancels_and_releases_hold(self, db, router, make_event):
        event = make_event(total_seats=5)
        _walk_to_hold(router)

        replies = router.route(PHONE, 'NO')

        assert 'cancelled' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL
        assert db.query(Booking).count() == 0
        db.refresh(event)
        assert event.available_seats == 5
        assert db.query(Reservation).one().status == ReservationStatus.EXPIRED.value

    def test_unclear_answer_reprompts(self, db, router, make_event):
        make_event()
        _walk_to_hold(router)

        replies = router.route(PHONE, 'maybe later')

        assert 'reply *YES*' in _texts(replies)[0]
        assert _state(db) == ConversationState.HOLD_PENDING

    def test_yes_after_expiry_resets(self, db, router, make_event):
        event = make_event(total_seats=5)
        _walk_to_hold(router)
        db.query(Reservation).update({Reservation.expires_at: now() - timedelta(minutes=1)})
        db.commit()

        replies = router.route(PHONE, 'yes')

        assert 'Reservation Expired' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL
        assert db.query(Booking).count() == 0

    def test_yes_after_sweep_resets(self, db, router, make_event):
        from src.reservations.service import ReservationManager

        event = make_event(total_seats=5)
        _walk_to_hold(router)
        ReservationManager(db).sweep_expired(current_time=now() + timedelta(minutes=10))

        replies = router.route(PHONE, 'yes')

        assert 'Reservation Expired' in _texts(replies)[0]
        db.refresh(event)
        assert event.available_seats == 5

    def test_render_failure_still_books(self, db, make_event):
        from .conftest import FakeRenderer

        router = ConversationRouter(db, renderer=FakeRenderer(fail=True), booking_flow='hold')
        make_event()
        _walk_to_hold(router)

        replies = router.route(PHONE, 'yes')

        assert len(replies) == 1
        assert 'BOOKING CONFIRMED' in replies[0].text
        assert db.query(Booking).one().qr_code_url is None


class TestGlobalCommands:
    def test_help_resets_from_any_state(self, db, router, make_event):
        make_event()
        router.route(PHONE, 'jazz')
        router.route(PHONE, '1')

        replies = router.route(PHONE, 'help')

        assert 'Help' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL

    def test_cancel_in_hold_pending_releases_seats(self, db, router, make_event):
        event = make_event(total_seats=5)
        _walk_to_hold(router)

        replies = router.route(PHONE, 'cancel')

        assert 'cancelled' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL
        db.refresh(event)
        assert event.available_seats == 5

    def test_cancel_in_browsing(self, db, router, make_event):
        make_event()
        router.route(PHONE, 'jazz')

        router.route(PHONE, 'stop')

        assert _state(db) == ConversationState.INITIAL

    def test_retrieve_booking_does_not_touch_session(self, db, router, make_event):
        make_event()
        _walk_to_hold(router)
        router.route(PHONE, 'yes')
        booking_id = db.query(Booking).one().booking_id
        router.route(PHONE, 'jazz')

        replies = router.route(PHONE, booking_id.lower())

        assert booking_id in replies[0].text
        assert replies[1].kind == MessageKind.MEDIA
        assert _state(db) == ConversationState.BROWSING

    def test_retrieve_malformed_id(self, db, router):
        replies = router.route(PHONE, 'BKG-12')

        assert 'Invalid booking ID format' in _texts(replies)[0]

    def test_retrieve_unknown_id(self, db, router):
        replies = router.route(PHONE, 'BKG-ZZZZZZ')

        assert 'not found' in _texts(replies)[0]

    def test_my_bookings(self, db, router, make_event):
        make_event(title='Jazz by the Bay')
        _walk_to_hold(router)
        router.route(PHONE, 'yes')

        replies = router.route(PHONE, 'my bookings')

        assert 'Your Bookings (1)' in _texts(replies)[0]
        assert 'Jazz by the Bay' in _texts(replies)[0]

    def test_my_bookings_empty(self, db, router):
        replies = router.route(PHONE, 'bookings')

        assert 'no bookings' in _texts(replies)[0]


class TestFailureBoundary:
    def test_broken_context_reports_expired_session(self, db, router):
        db.add(ChatSession(phone=PHONE, state='HOLD_PENDING', context={'user_name': 'John'}, last_activity=now()))
        db.commit()

        replies = router.route(PHONE, 'yes')

        assert 'session has expired' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL

    def test_unexpected_error_apologises_and_resets(self, db, router, make_event, monkeypatch):
        make_event()
        router.route(PHONE, 'jazz')
        router.route(PHONE, '1')

        def explode(event_id):
            raise RuntimeError('database went away')

        monkeypatch.setattr(router.events, 'get_snapshot', explode)
        replies = router.route(PHONE, '2')

        assert 'Something went wrong' in _texts(replies)[0]
        assert _state(db) == ConversationState.INITIAL

    def test_unknown_flow_rejected(self, db):
        with pytest.raises(ValueError):
            ConversationRouter(db, booking_flow='carrier-pigeon')
