# backend/tests/unit/test_messages/test_event_store.py

from datetime import datetime, timedelta, timezone

import pytest

from chat_history.core.exceptions import InvalidMessageError
from chat_history.messages.models import ChatMessage, SenderType
from chat_history.messages.schemas import MessageFilter, Pagination, TimeRange
from chat_history.messages.store import EventStore


@pytest.fixture
def store(db_session):
    return EventStore(db_session)


def _append(store, created_at, session_id="abc", sender="user", text="hello", **kwargs):
    return store.append({
        "session_id": session_id,
        "sender": sender,
        "text": text,
        "created_at": created_at,
        **kwargs,
    })


class TestAppend:

    def test_assigns_id_and_maps_fields(self, store, now):
        message = _append(
            store, now, text="Where is my order?", intent="order_status", confidence=0.92,
            client_meta={"user_agent": "Mozilla/5.0", "ip_address": "203.0.113.7"},
            user_email="ana@example.com",
        )

        assert message.id is not None
        assert message.sender is SenderType.USER
        assert message.message == "Where is my order?"
        assert message.user_agent == "Mozilla/5.0"
        assert message.ip_address == "203.0.113.7"
        assert message.created_at == now

    def test_defaults_created_at_to_now(self, store):
        before = datetime.utcnow()
        message = store.append({"session_id": "abc", "sender": "bot", "text": "hi"})
        assert message.created_at >= before

    def test_aware_timestamps_are_stored_as_utc(self, store):
        aware = datetime(2026, 10, 17, 9, 30, tzinfo=timezone(timedelta(hours=-3)))
        message = _append(store, aware)
        assert message.created_at == datetime(2026, 10, 17, 12, 30)

    @pytest.mark.parametrize("overrides", [
        {"sender": "system"},
        {"confidence": -0.1},
        {"confidence": 1.01},
        {"response_time_ms": -5},
        {"session_id": ""},
    ])
    def test_rejects_out_of_domain_values(self, store, db_session, now, overrides):
        with pytest.raises(InvalidMessageError):
            _append(store, now, **overrides)
        assert db_session.query(ChatMessage).count() == 0


class TestQuery:

    def test_orders_by_created_at_then_id(self, store, now):
        late = _append(store, now + timedelta(minutes=5), text="late")
        first = _append(store, now, text="first")
        second = _append(store, now, text="second")

        result = store.query(MessageFilter(session_id="abc"))
        assert [m.id for m in result] == [first.id, second.id, late.id]

    def test_filters_and_time_range_is_half_open(self, store, now):
        _append(store, now - timedelta(hours=1), text="before")
        inside = _append(store, now, text="inside", intent="billing")
        _append(store, now, session_id="other", text="other session", intent="billing")
        _append(store, now + timedelta(hours=1), text="at end", intent="billing")

        result = store.query(
            MessageFilter(session_id="abc", intent="billing"),
            TimeRange(start=now, end=now + timedelta(hours=1)),
        )
        assert [m.id for m in result] == [inside.id]

    def test_filter_by_sender(self, store, now):
        _append(store, now, sender="user")
        bot = _append(store, now, sender="bot")
        result = store.query(MessageFilter(sender=SenderType.BOT))
        assert [m.id for m in result] == [bot.id]

    def test_pagination(self, store, now):
        ids = [_append(store, now + timedelta(seconds=i), text=str(i)).id for i in range(5)]
        page = store.query(pagination=Pagination(limit=2, offset=2))
        assert [m.id for m in page] == ids[2:4]

    def test_counts(self, store, now):
        for _ in range(3):
            _append(store, now)
        _append(store, now, session_id="xyz")

        assert store.count_for_session("abc") == 3
        assert store.count_for_session("missing") == 0
        assert store.counts_by_session(["abc", "xyz", "missing"]) == {"abc": 3, "xyz": 1}
        assert store.counts_by_session([]) == {}
        assert len(store.messages_for_session("abc")) == 3


class TestDeleteOlderThan:

    def test_deletes_only_strictly_older_messages(self, store, now):
        cutoff = now - timedelta(days=180)
        _append(store, now - timedelta(days=200))
        kept_boundary = _append(store, cutoff)
        kept_recent = _append(store, now - timedelta(days=10))

        assert store.delete_older_than(cutoff) == 1
        remaining = store.query()
        assert [m.id for m in remaining] == [kept_boundary.id, kept_recent.id]

        # repetir não remove mais nada
        assert store.delete_older_than(cutoff) == 0
