"""Tests for the in-memory record store."""

import pytest

from menu_lstar.store.memory_store import MemoryStore, NotFoundError, QueryQueue
from menu_lstar.store.records import LearnedDFA, OracleQuery, QueryStatus, QueryType


def make_query(query_id, query_type=QueryType.MEMBERSHIP, status=QueryStatus.PENDING):
    return OracleQuery(id=query_id, session_id=1, query_type=query_type, query_data="{}",
                       status=status)


class TestQueryQueue:

    def test_oldest_pending_advances(self):
        queue = QueryQueue()
        first, second = make_query(1), make_query(2)
        queue.append(first)
        queue.append(second)
        assert queue.oldest_pending() is first
        first.status = QueryStatus.ANSWERED
        assert queue.oldest_pending() is second
        assert queue.head == 1

    def test_filter_by_type(self):
        queue = QueryQueue()
        queue.append(make_query(1, QueryType.MEMBERSHIP))
        queue.append(make_query(2, QueryType.EQUIVALENCE))
        assert queue.oldest_pending(QueryType.EQUIVALENCE).id == 2
        assert len(queue) == 2


class TestMemoryStore:

    def test_sessions(self):
        store = MemoryStore()
        first = store.create_session("first")
        second = store.create_session("second", target_concept="salad")
        assert [s.id for s in store.list_sessions()] == [second.id, first.id]
        store.update_session(first.id, description="done")
        assert store.get_session(first.id).description == "done"
        with pytest.raises(AttributeError):
            store.update_session(first.id, colour="red")
        with pytest.raises(NotFoundError):
            store.get_session(99)

    def test_items(self):
        store = MemoryStore([{'name': 'Tiramisu', 'price': '5.5', 'category': None}])
        item = store.all_items()[0]
        assert item.id == 1
        assert item.price == 5.5
        assert item.category == ""
        assert store.find_item("  tiramisu ") is item
        assert store.find_item("cake") is None

    def test_queries_and_counts(self):
        store = MemoryStore()
        session = store.create_session("q")
        store.create_query(session.id, QueryType.MEMBERSHIP, "{}")
        store.create_query(session.id, QueryType.EQUIVALENCE, "{}", response="correct",
                           status=QueryStatus.ANSWERED)
        assert store.count_queries(session.id) == 2
        assert store.count_queries(session.id, QueryType.MEMBERSHIP) == 1
        assert len(store.queries_for(session.id, status=QueryStatus.ANSWERED)) == 1
        pending = store.oldest_pending(session.id)
        store.record_response(pending.id, "yes", QueryStatus.ANSWERED)
        assert store.oldest_pending(session.id) is None
        with pytest.raises(NotFoundError):
            store.create_query(42, QueryType.MEMBERSHIP, "{}")

    def test_dfa_upsert_keeps_one_snapshot(self):
        store = MemoryStore()
        session = store.create_session("dfa")
        for accept in (["a"], ["b"]):
            store.upsert_dfa(LearnedDFA(session.id, ["a", "b"], [], {}, "a", accept))
        assert store.count_dfa_snapshots(session.id) == 1
        assert store.get_dfa(session.id).accept_states == ["b"]
        assert store.get_dfa(99) is None

    def test_counterexamples_need_hypothesis(self):
        store = MemoryStore()
        with pytest.raises(NotFoundError):
            store.create_counterexample(1, {}, "missing")
