"""Tests for the learning service operation surface."""

from datetime import timedelta

import pytest

from menu_lstar.config import LearningConfig, OracleMode, TableMode
from menu_lstar.extraction.learning_service import LearningService
from menu_lstar.store.corpus import DEMO_EXAMPLES
from menu_lstar.store.memory_store import MemoryStore, NotFoundError
from menu_lstar.store.records import QueryType, utcnow
from menu_lstar.synthesis import CategoryLookup, RenameField


@pytest.fixture
def service(pizza_salad_store, human_atomic_config):
    return LearningService(pizza_salad_store, human_atomic_config)


@pytest.fixture
def example_service():
    service = LearningService()
    session = service.store.create_session("names")
    for source, target in DEMO_EXAMPLES:
        service.add_example(session.id, source, target)
    return service, session.id


class TestLearningFlow:

    def test_start_learning_returns_first_query(self, service):
        result = service.start_learning("Pizza", target_concept="pizza")
        assert result["is_complete"] is False
        assert result["final_result"] is None
        query = result["current_query"]
        assert query["query_type"] == "membership"
        assert query["status"] == "pending"
        assert query["payload"]["candidate"] == "Margherita Pizza"

    def test_pizza_and_salad_end_to_end(self, service):
        session_id = service.start_learning("Pizza", target_concept="pizza")["session_id"]

        step = service.answer_query(session_id, "true")
        assert step["answered_query"]["response"] == "true"
        assert step["next_query"]["payload"]["candidate"] == "Caesar Salad"

        step = service.answer_query(session_id, "false")
        assert step["next_query"]["query_type"] == "equivalence"
        assert step["is_complete"] is False

        step = service.answer_query(session_id, "correct")
        assert step["is_complete"] is True
        assert step["next_query"] is None
        final = step["final_result"]
        assert final["accuracy"] == 1.0
        assert final["hypothesis"]["accept_states"] == ["Margherita Pizza"]
        assert final["summary"].startswith("Accuracy 100.0%")

        hypothesis = service.get_current_hypothesis(session_id)
        assert hypothesis["target_concept"] == "pizza"
        assert hypothesis["accept_states"] == ["Margherita Pizza"]
        assert service.store.count_dfa_snapshots(session_id) == 1
        assert service.list_sessions()[0]["status"] == "completed"

    def test_counterexample_answer_refines(self, service):
        session_id = service.start_learning("Pizza", target_concept="pizza")["session_id"]
        service.answer_query(session_id, "no")
        service.answer_query(session_id, "no")
        step = service.answer_query(session_id, "Margherita Pizza")
        assert step["answered_query"]["status"] == "counterexample"
        assert step["next_query"]["query_type"] == "equivalence"
        assert service.get_current_hypothesis(session_id)["accept_states"] == []

    def test_re_answering_is_idempotent(self, service):
        result = service.start_learning("Pizza", target_concept="pizza")
        session_id, query_id = result["session_id"], result["current_query"]["id"]

        service.answer_query(session_id, "yes", query_id=query_id)
        before = service.get_metrics(session_id)
        pending_before = service.pending_queries(session_id)

        again = service.answer_query(session_id, "no", query_id=query_id)
        assert again["answered_query"]["response"] == "yes"
        assert service.get_metrics(session_id) == before
        assert service.pending_queries(session_id) == pending_before
        assert len(pending_before) == 1

    def test_budgets_never_exceeded(self, five_item_store):
        config = LearningConfig(table_mode=TableMode.ATOMIC, oracle_mode=OracleMode.HUMAN,
                                max_membership_queries=3, max_equivalence_queries=2)
        service = LearningService(five_item_store, config)
        session_id = service.start_learning("Budget", target_concept="salad")["session_id"]
        step = {"is_complete": False}
        for response in ["yes", "no", "yes", "Greek Salad", "Tiramisu", "correct"]:
            if step["is_complete"]:
                break
            step = service.answer_query(session_id, response)
        metrics = service.get_metrics(session_id)
        assert metrics["membership_query_count"] <= 3
        assert metrics["equivalence_query_count"] <= 2
        assert step["is_complete"]

    def test_metrics_shape(self, service):
        session_id = service.start_learning("Pizza", target_concept="pizza")["session_id"]
        metrics = service.get_metrics(session_id)
        assert metrics["total_queries"] == 1
        assert metrics["membership_query_count"] == 1
        assert metrics["equivalence_query_count"] == 0
        assert metrics["has_learned_hypothesis"] is True
        assert metrics["hypothesis_snapshot"]["states"] == ["Margherita Pizza", "Caesar Salad"]

    def test_corpus_session_completes_on_start(self):
        config = LearningConfig(table_mode=TableMode.ATOMIC, oracle_mode=OracleMode.CORPUS,
                                max_membership_queries=32)
        service = LearningService(config=config)
        result = service.start_learning("Drinks", target_concept="drinks")
        assert result["is_complete"] is True
        assert result["current_query"] is None
        assert result["final_result"]["accuracy"] == 1.0
        assert service.session_metrics[result["session_id"]].converged

    def test_answer_on_completed_session_reports_result(self):
        config = LearningConfig(table_mode=TableMode.ATOMIC, oracle_mode=OracleMode.CORPUS,
                                max_membership_queries=32)
        service = LearningService(config=config)
        session_id = service.start_learning("Pizza", target_concept="pizza")["session_id"]
        step = service.answer_query(session_id, "yes")
        assert step["answered_query"] is None
        assert step["is_complete"] is True
        assert step["final_result"]["target_concept"] == "pizza"

    def test_final_result_from_a_fresh_service(self):
        config = LearningConfig(table_mode=TableMode.ATOMIC, oracle_mode=OracleMode.CORPUS,
                                max_membership_queries=32)
        first = LearningService(config=config)
        session_id = first.start_learning("Salad", target_concept="salad")["session_id"]

        second = LearningService(first.store, config)
        final = second.continue_learning(session_id)["final_result"]
        assert final["accuracy"] == 1.0
        assert final["correct"] == 17
        assert final["misclassified"] == []

    def test_continue_learning(self, service):
        session_id = service.start_learning("Pizza", target_concept="pizza")["session_id"]
        result = service.continue_learning(session_id)
        assert result["phase"] == "awaiting_membership"
        assert result["next_query"]["query_type"] == "membership"
        assert service.get_metrics(session_id)["membership_query_count"] == 1


class TestNotFound:

    def test_unknown_session(self, service):
        with pytest.raises(NotFoundError):
            service.answer_query(99, "yes")
        with pytest.raises(NotFoundError):
            service.get_current_hypothesis(99)
        with pytest.raises(NotFoundError):
            service.get_metrics(99)

    def test_unknown_query(self, service):
        session_id = service.start_learning("Pizza", target_concept="pizza")["session_id"]
        with pytest.raises(NotFoundError):
            service.answer_query(session_id, "yes", query_id=999)

    def test_query_of_another_session(self, service):
        first = service.start_learning("A", target_concept="pizza")
        second = service.start_learning("B", target_concept="pizza")
        with pytest.raises(NotFoundError):
            service.answer_query(second["session_id"], "yes",
                                 query_id=first["current_query"]["id"])

    def test_no_pending_query(self, pizza_salad_store, human_atomic_config):
        service = LearningService(pizza_salad_store, human_atomic_config)
        session = pizza_salad_store.create_session("idle")
        with pytest.raises(NotFoundError):
            service.answer_query(session.id, "yes")

    def test_hypothesis_before_learning(self, service):
        session = service.store.create_session("empty", target_concept="salad")
        hypothesis = service.get_current_hypothesis(session.id)
        assert hypothesis["states"] == []
        assert hypothesis["start_state"] is None
        assert hypothesis["target_concept"] == "salad"


class TestCorpus:

    def test_seed_and_list(self):
        service = LearningService(MemoryStore())
        assert service.all_items() == []
        seeded = service.seed_corpus([{'name': 'Calzone', 'price': 8, 'category': 'Pizza'}])
        assert seeded == [{'name': 'Calzone', 'price': 8.0, 'category': 'Pizza'}]
        assert service.all_items() == seeded

    def test_default_store_has_demo_corpus(self):
        assert len(LearningService().all_items()) == 17


class TestTransformationMode:

    def test_generate_requires_positive_examples(self, service):
        session = service.store.create_session("empty")
        service.add_example(session.id, {'name': 'x'}, {'title': 'y'}, "negative")
        with pytest.raises(ValueError):
            service.generate_hypothesis(session.id)

    def test_generate_test_and_accept(self, example_service):
        service, session_id = example_service
        generated = service.generate_hypothesis(session_id)
        assert generated["status"] == "active"
        assert [step["kind"] for step in generated["program"]] == ["rename_field", "strip_suffix"]

        tested = service.test_hypothesis(generated["hypothesis_id"])
        assert tested["correct_count"] == tested["total_count"] == 6
        assert tested["confidence"] == 1.0
        assert tested["counterexamples"] == []

        accepted = service.evaluate_hypothesis(generated["hypothesis_id"], accept=True)
        assert accepted["status"] == "completed"
        pizzas = {record["title"] for record in accepted["transformed"]["Pizza"]}
        assert "Hawaiian" in pizzas and "Veggie Supreme" in pizzas
        salads = {record["title"] for record in accepted["transformed"]["Salad"]}
        assert "Caesar Salad" in salads

        stats = service.session_stats(session_id)
        assert stats["total_examples"] == 6
        assert stats["positive_examples"] == 6
        assert stats["hypothesis_count"] == 1
        assert stats["best_confidence"] == 1.0

    def test_failing_examples_become_counterexamples(self, example_service):
        service, session_id = example_service
        hypothesis_id = service.generate_hypothesis(session_id)["hypothesis_id"]
        service.add_example(session_id, {'name': 'Garlic Bread', 'price': 4.0},
                            {'title': 'Garlic Bread', 'price': 4.0})
        tested = service.test_hypothesis(hypothesis_id)
        assert tested["total_count"] == 7
        assert tested["correct_count"] == 6
        assert len(tested["counterexamples"]) == 1
        assert "category" in tested["counterexamples"][0]["error_message"]

        # Testing again records no duplicates
        assert len(service.test_hypothesis(hypothesis_id)["counterexamples"]) == 1

    def test_step_failures_never_propagate(self, example_service):
        service, session_id = example_service
        service.add_example(session_id, {'name': 'Calzone', 'price': 1, 'category': ['pizza']},
                            {'title': 'Calzone', 'price': 1, 'category': 'Pizza'})
        generated = service.generate_hypothesis(session_id)
        hypothesis = service.store.get_hypothesis(generated["hypothesis_id"])
        service.store.update_hypothesis(
            hypothesis.id,
            program=(RenameField('name', 'title'),
                     CategoryLookup('category', (('pizza', 'Pizza'),))),
        )
        tested = service.test_hypothesis(hypothesis.id)
        assert tested["total_count"] == 7
        assert tested["correct_count"] < 7
        assert any("unhashable" in c["error_message"] for c in tested["counterexamples"])

    def test_reject(self, example_service):
        service, session_id = example_service
        hypothesis_id = service.generate_hypothesis(session_id)["hypothesis_id"]
        rejected = service.evaluate_hypothesis(hypothesis_id, accept=False)
        assert rejected["status"] == "rejected"
        assert rejected["transformed"] is None

    def test_session_age_in_days(self, example_service):
        service, session_id = example_service
        assert service.session_stats(session_id)["session_age"] == 0
        service.store.update_session(session_id, created_at=utcnow() - timedelta(days=3, hours=2))
        assert service.session_stats(session_id)["session_age"] == 3

    def test_global_stats(self, example_service):
        service, session_id = example_service
        hypothesis_id = service.generate_hypothesis(session_id)["hypothesis_id"]
        service.test_hypothesis(hypothesis_id)
        idle = service.store.create_session("idle")
        service.add_example(idle.id, {'name': 'x'}, {'title': 'x'}, "negative")

        stats = service.global_stats()
        assert stats["total_sessions"] == 2
        assert stats["total_examples"] == 7
        assert stats["total_hypotheses"] == 1
        assert stats["average_confidence"] == 1.0
        assert stats["top_performing_session"] == {
            'name': 'names', 'confidence': 1.0, 'hypothesis_count': 1}
        assert [s["name"] for s in stats["recent_activity"]] == ["idle", "names"]
        assert stats["recent_activity"][1]["example_count"] == 6

    def test_global_stats_limits_recent_activity(self):
        service = LearningService()
        for i in range(7):
            service.store.create_session(f"s{i}")
        stats = service.global_stats()
        assert stats["top_performing_session"] is None
        assert stats["average_confidence"] == 0.0
        assert [s["name"] for s in stats["recent_activity"]] == ["s6", "s5", "s4", "s3", "s2"]

    def test_unknown_hypothesis(self, service):
        with pytest.raises(NotFoundError):
            service.test_hypothesis(5)
        with pytest.raises(NotFoundError):
            service.evaluate_hypothesis(5, accept=True)
