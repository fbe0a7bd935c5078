"""Tests for the oracle gateway and the oracle capabilities."""

import json

import pytest

from menu_lstar.config import LearningConfig, OracleMode
from menu_lstar.core.dfa import DFA
from menu_lstar.store.memory_store import NotFoundError
from menu_lstar.store.records import QueryStatus, QueryType
from menu_lstar.teacher.oracles import (
    ConceptPredicate,
    CorpusOracle,
    HumanOracle,
    HybridOracle,
    create_oracle,
)
from menu_lstar.teacher.responses import (
    MalformedPayload,
    is_correct,
    parse_bool,
    payload_candidate,
    payload_hypothesis,
)
from menu_lstar.teacher.teacher import Teacher


def accept_nothing():
    return DFA(states=["q0"], alphabet=[], transitions={"q0": {}},
               initial_state="q0", final_states=set())


@pytest.mark.parametrize("text,expected", [
    ("true", True), ("YES", True), (" 1 ", True), ("True", True),
    ("false", False), ("no", False), ("", False), (None, False), ("yep", False),
])
def test_parse_bool(text, expected):
    assert parse_bool(text) is expected


def test_is_correct_trims_and_ignores_case():
    assert is_correct(" Correct ")
    assert not is_correct("Caesar Salad")
    assert not is_correct(None)


def test_payload_decoding_errors():
    with pytest.raises(MalformedPayload):
        payload_candidate("not json")
    with pytest.raises(MalformedPayload):
        payload_candidate(json.dumps(["a list"]))
    with pytest.raises(MalformedPayload):
        payload_hypothesis(json.dumps({"candidate": "x"}))


class TestConceptPredicate:

    def test_substring_and_category(self, demo_store):
        predicate = ConceptPredicate("pizza", demo_store.all_items())
        assert predicate("Margherita Pizza")
        assert predicate("pizza")
        assert not predicate("Caesar Salad")

    def test_category_membership_without_substring(self, demo_store):
        predicate = ConceptPredicate("drinks", demo_store.all_items())
        assert predicate("Cappuccino")
        assert predicate("espresso coffee")
        assert not predicate("Tiramisu")


class TestMembershipQuery:

    def test_pending_query_created_with_context(self, human_teacher):
        assert human_teacher.membership_query("Margherita Pizza") is False
        pending = human_teacher.oldest_pending()
        assert pending.query_type is QueryType.MEMBERSHIP
        payload = json.loads(pending.query_data)
        assert payload["candidate"] == "Margherita Pizza"
        assert "Margherita Pizza" in payload["question"]
        assert payload["category_examples"]["Pizza"] == ["Margherita Pizza"]
        assert payload["progress"] == {"membership_queries": 1, "max_membership_queries": 8}

    def test_only_one_pending_membership_query(self, human_teacher):
        human_teacher.membership_query("Margherita Pizza")
        human_teacher.membership_query("Caesar Salad")
        human_teacher.membership_query("Margherita Pizza")
        assert human_teacher.membership_count == 1

    def test_answered_query_is_reused(self, human_teacher):
        human_teacher.membership_query("Margherita Pizza")
        human_teacher.answer(human_teacher.oldest_pending().id, "Yes")
        assert human_teacher.membership_query("Margherita Pizza") is True
        assert human_teacher.lookup("Margherita Pizza") is True
        assert human_teacher.is_settled("Margherita Pizza")
        assert human_teacher.membership_count == 1
        assert human_teacher.cache_hits == 1

    def test_budget_exhaustion_answers_false_without_new_rows(self, pizza_salad_store):
        session = pizza_salad_store.create_session("budget")
        teacher = Teacher(pizza_salad_store, session.id, HumanOracle(),
                          LearningConfig(max_membership_queries=2))
        for candidate in ["a", "b", "c", "d"]:
            teacher.membership_query(candidate)
            pending = teacher.oldest_pending()
            if pending is not None:
                teacher.answer(pending.id, "yes")
        assert teacher.membership_count == 2
        assert teacher.membership_budget_exhausted
        assert teacher.membership_query("e") is False
        assert teacher.is_settled("e")
        assert teacher.membership_count == 2

    def test_corpus_oracle_answers_immediately(self, corpus_teacher):
        assert corpus_teacher.membership_query("Hawaiian Pizza") is True
        assert corpus_teacher.membership_query("Greek Salad") is False
        assert corpus_teacher.oldest_pending() is None
        rows = corpus_teacher.store.queries_for(corpus_teacher.session_id, QueryType.MEMBERSHIP)
        assert [q.response for q in rows] == ["true", "false"]
        assert all(q.status is QueryStatus.ANSWERED for q in rows)

    def test_malformed_rows_are_skipped(self, human_teacher):
        store = human_teacher.store
        store.create_query(human_teacher.session_id, QueryType.MEMBERSHIP, "{broken",
                           response="true", status=QueryStatus.ANSWERED)
        assert human_teacher.lookup("Margherita Pizza") is None
        assert human_teacher.membership_query("Margherita Pizza") is False


class TestEquivalenceQuery:

    def test_pending_equivalence_query(self, human_teacher):
        assert human_teacher.equivalence_query(accept_nothing()) is None
        pending = human_teacher.oldest_pending()
        assert pending.query_type is QueryType.EQUIVALENCE
        payload = json.loads(pending.query_data)
        assert payload["hypothesis"] == accept_nothing().to_dict()
        assert "correct" in payload["instructions"]
        # A second call waits for the same question
        assert human_teacher.equivalence_query(accept_nothing()) is None
        assert human_teacher.equivalence_count == 1

    def test_accepted_hypothesis_is_not_asked_again(self, human_teacher):
        human_teacher.equivalence_query(accept_nothing())
        human_teacher.answer(human_teacher.oldest_pending().id, "CORRECT")
        assert human_teacher.equivalence_query(accept_nothing()) == "correct"
        assert human_teacher.equivalence_count == 1

    def test_budget_exhaustion_assumes_correct(self, pizza_salad_store):
        session = pizza_salad_store.create_session("eq budget")
        teacher = Teacher(pizza_salad_store, session.id, HumanOracle(),
                          LearningConfig(max_equivalence_queries=0))
        assert teacher.equivalence_query(accept_nothing()) == "correct"
        assert teacher.equivalence_count == 0

    def test_corpus_oracle_returns_first_disagreement(self, corpus_teacher):
        result = corpus_teacher.equivalence_query(accept_nothing(), classify=lambda w: False)
        assert result == "Margherita Pizza"
        row = corpus_teacher.store.queries_for(corpus_teacher.session_id,
                                               QueryType.EQUIVALENCE)[0]
        assert row.status is QueryStatus.COUNTEREXAMPLE
        assert corpus_teacher.counterexamples() == [("Margherita Pizza", accept_nothing().to_dict())]

    def test_corpus_oracle_declares_correct(self, corpus_teacher):
        predicate = corpus_teacher.oracle.predicate
        assert corpus_teacher.equivalence_query(accept_nothing(), classify=predicate) == "correct"
        row = corpus_teacher.store.queries_for(corpus_teacher.session_id,
                                               QueryType.EQUIVALENCE)[0]
        assert row.status is QueryStatus.ANSWERED


class TestAnswer:

    def test_counterexample_answer(self, human_teacher):
        human_teacher.equivalence_query(accept_nothing())
        query = human_teacher.answer(human_teacher.oldest_pending().id, " Margherita Pizza ")
        assert query.status is QueryStatus.COUNTEREXAMPLE
        assert query.response == "Margherita Pizza"
        assert human_teacher.counterexamples()[0][0] == "Margherita Pizza"

    def test_re_answer_is_a_no_op(self, human_teacher):
        human_teacher.membership_query("Margherita Pizza")
        query_id = human_teacher.oldest_pending().id
        human_teacher.answer(query_id, "true")
        again = human_teacher.answer(query_id, "false")
        assert again.response == "true"
        assert human_teacher.membership_count == 1
        assert human_teacher.oldest_pending() is None

    def test_foreign_query_is_not_found(self, pizza_salad_store, human_teacher):
        other = pizza_salad_store.create_session("other")
        other_teacher = Teacher(pizza_salad_store, other.id, HumanOracle())
        other_teacher.membership_query("Caesar Salad")
        with pytest.raises(NotFoundError):
            human_teacher.answer(other_teacher.oldest_pending().id, "yes")

    def test_missing_query_and_session(self, pizza_salad_store, human_teacher):
        with pytest.raises(NotFoundError):
            human_teacher.answer(999, "yes")
        with pytest.raises(NotFoundError):
            Teacher(pizza_salad_store, 999, HumanOracle())


class TestOracles:

    def test_hybrid_defers_unknown_words(self, demo_store):
        items = demo_store.all_items()
        oracle = HybridOracle(ConceptPredicate("pizza", items), items)
        assert oracle.answer_membership("Hawaiian Pizza") is True
        assert oracle.answer_membership("Calzone") is None
        assert oracle.find_counterexample(accept_nothing(), lambda w: False) is None

    def test_human_defers_everything(self):
        oracle = HumanOracle()
        assert oracle.answer_membership("anything") is None
        assert oracle.find_counterexample(accept_nothing(), lambda w: False) is None
        assert oracle.get_statistics()["total_queries"] == 2

    def test_test_words_replayed_first(self, demo_store):
        items = demo_store.all_items()
        oracle = CorpusOracle(ConceptPredicate("pizza", items), items)
        oracle.set_test_words(["pizza", "pizza"])
        assert oracle.test_words == ["pizza"]
        assert oracle.find_counterexample(accept_nothing(), lambda w: False) == "pizza"

    def test_factory(self, demo_store):
        items = demo_store.all_items()
        predicate = ConceptPredicate("pizza", items)
        assert isinstance(create_oracle(OracleMode.CORPUS, predicate, items), CorpusOracle)
        assert isinstance(create_oracle(OracleMode.HUMAN, predicate, items), HumanOracle)
        assert isinstance(create_oracle(OracleMode.HYBRID, predicate, items), HybridOracle)
        with pytest.raises(ValueError):
            create_oracle("corpus", predicate, items)
