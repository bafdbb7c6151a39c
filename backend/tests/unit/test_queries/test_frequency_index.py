# backend/tests/unit/test_queries/test_frequency_index.py

from datetime import timedelta

import pytest

from chat_history.core.exceptions import QueryNotFoundError
from chat_history.queries.frequency import FrequencyIndex, running_mean


def test_running_mean():
    assert running_mean(None, 0.8, 1) == 0.8
    assert running_mean(0.8, 0.6, 2) == pytest.approx(0.7)
    assert running_mean(0.7, 1.0, 3) == pytest.approx(0.8)


class TestFrequencyIndex:

    def test_variants_merge_into_one_entry(self, db_session, now):
        index = FrequencyIndex(db_session)

        index.record("What is my order status?", intent="order_status", confidence=0.9, asked_at=now)
        entry = index.record("what is my order status", intent="order_status", confidence=0.7,
                             asked_at=now + timedelta(minutes=1))

        assert entry.normalized_query == "what is my order status"
        assert entry.frequency_count == 2
        assert entry.query_text == "What is my order status?"
        assert entry.average_confidence == pytest.approx(0.8)
        assert entry.last_asked_at == now + timedelta(minutes=1)
        assert len(index.top(10)) == 1

    @pytest.mark.parametrize("raw", [None, "", "   ", "\n\t"])
    def test_blank_text_is_not_indexed(self, db_session, raw):
        index = FrequencyIndex(db_session)
        assert index.record(raw) is None
        assert index.total_count() == 0

    def test_punctuation_only_text_is_counted(self, db_session, now):
        index = FrequencyIndex(db_session)
        index.record("?", asked_at=now)
        entry = index.record(" ? ", asked_at=now)
        index.record("...", asked_at=now)

        assert entry.normalized_query == "?"
        assert entry.frequency_count == 2
        assert index.total_count() == 3

    def test_confidence_mean_ignores_missing_values(self, db_session, now):
        index = FrequencyIndex(db_session)
        index.record("hi", confidence=None, asked_at=now)
        entry = index.record("hi", confidence=0.5, asked_at=now)

        assert entry.frequency_count == 2
        assert entry.confidence_samples == 1
        assert entry.average_confidence == pytest.approx(0.5)

    def test_last_asked_at_never_moves_backwards(self, db_session, now):
        index = FrequencyIndex(db_session)
        index.record("hi", asked_at=now)
        entry = index.record("hi", asked_at=now - timedelta(hours=2))
        assert entry.last_asked_at == now

    def test_intent_follows_most_frequent(self, db_session, now):
        index = FrequencyIndex(db_session)
        index.record("refund", intent="billing", asked_at=now)
        entry = index.record("refund", intent="returns", asked_at=now)
        # empate: a mais recente vence
        assert entry.intent == "returns"

        entry = index.record("refund", intent="billing", asked_at=now)
        assert entry.intent == "billing"
        assert entry.intent_counts == {"billing": 2, "returns": 1}

    def test_top_orders_by_count_then_recency(self, db_session, now):
        index = FrequencyIndex(db_session)
        for _ in range(3):
            index.record("track package", asked_at=now)
        index.record("old question", asked_at=now - timedelta(days=1))
        index.record("new question", asked_at=now)

        top = index.top(3)
        assert [e.normalized_query for e in top] == ["track package", "new question", "old question"]
        assert [e.normalized_query for e in index.top(1)] == ["track package"]

    def test_total_count_matches_recorded_messages(self, db_session, now):
        index = FrequencyIndex(db_session)
        texts = ["A?", "a", "b", "B!", "c", "  "]
        for text in texts:
            index.record(text, asked_at=now)
        # só o texto vazio fica de fora
        assert index.total_count() == 5

    def test_set_suggested_response(self, db_session, now):
        index = FrequencyIndex(db_session)
        index.record("Reset password?", asked_at=now)

        entry = index.set_suggested_response("reset password", "Use the 'Forgot password' link.")
        assert entry.suggested_response == "Use the 'Forgot password' link."

        with pytest.raises(QueryNotFoundError):
            index.set_suggested_response("unknown", "x")

    def test_reset_single_entry_and_all(self, db_session, now):
        index = FrequencyIndex(db_session)
        index.record("one", asked_at=now)
        index.record("two", asked_at=now)

        assert index.reset("ONE?") == 1
        assert index.get("one") is None

        with pytest.raises(QueryNotFoundError):
            index.reset("one")

        assert index.reset() == 1
        assert index.total_count() == 0
