"""
Learning service.

This is the primary interface for running learning sessions: it starts and
resumes the L* controller, records oracle answers and exposes the current
hypothesis and metrics as plain dictionaries. It also hosts the
example-driven transformation mode.
"""

from typing import Any, Dict, Iterable, List, Optional

from menu_lstar.benchmarks.metrics import SessionMetrics, evaluate_hypothesis_on_corpus
from menu_lstar.config import LearningConfig
from menu_lstar.core.dfa import DFA
from menu_lstar.core.lstar import LStarController
from menu_lstar.store.corpus import DEMO_ITEMS
from menu_lstar.store.memory_store import MemoryStore, NotFoundError
from menu_lstar.store.records import (
    ExampleType,
    HypothesisStatus,
    LearningSession,
    OracleQuery,
    QueryType,
    SessionStatus,
    utcnow,
)
from menu_lstar.synthesis import (
    apply_to_corpus,
    program_to_dict,
    score,
    synthesize,
)
from menu_lstar.teacher.oracles import ConceptPredicate, HumanOracle, MembershipOracle
from menu_lstar.teacher.responses import MalformedPayload, decode_payload
from menu_lstar.teacher.teacher import Teacher


def _session_dict(session: LearningSession) -> Dict[str, Any]:
    return {
        'id': session.id,
        'name': session.name,
        'description': session.description,
        'status': session.status.value,
        'target_concept': session.target_concept,
        'created_at': session.created_at.isoformat(),
        'updated_at': session.updated_at.isoformat(),
    }


class LearningService:
    """
    Operation surface over the record store and the learning engine.

    Usage:
        service = LearningService()
        started = service.start_learning("Pizza session", target_concept="pizza")
        service.answer_query(started['session_id'], "yes")
    """

    def __init__(self, store: Optional[MemoryStore] = None,
                 config: Optional[LearningConfig] = None,
                 oracle: Optional[MembershipOracle] = None):
        """
        Initialize the service.

        Args:
            store: Record store; a fresh one seeded with the demo corpus if None
            config: Learning configuration shared by every session
            oracle: Oracle capability; built per session from config if None
        """
        self.store = store if store is not None else MemoryStore(DEMO_ITEMS)
        self.config = config or LearningConfig()
        self.oracle = oracle
        self.verbose = self.config.verbose

        # Metrics of sessions that converged through this service
        self.session_metrics: Dict[int, SessionMetrics] = {}

    # Corpus

    def seed_corpus(self, items: Iterable[Any]) -> List[Dict[str, Any]]:
        return [item.to_dict() for item in self.store.seed_items(items)]

    def all_items(self) -> List[Dict[str, Any]]:
        return [item.to_dict() for item in self.store.all_items()]

    # L* sessions

    def _controller(self, session_id: int) -> LStarController:
        return LStarController(self.store, session_id, self.config, oracle=self.oracle)

    def _query_dict(self, query: Optional[OracleQuery]) -> Optional[Dict[str, Any]]:
        if query is None:
            return None
        data = query.to_dict()
        try:
            data['payload'] = decode_payload(query.query_data)
        except MalformedPayload as e:
            if self.verbose:
                print(f"[Service] Query {query.id} has a malformed payload: {e}")
            data['payload'] = None
        return data

    def _final_result(self, session_id: int) -> Optional[Dict[str, Any]]:
        session = self.store.get_session(session_id)
        if session.status is not SessionStatus.COMPLETED:
            return None
        result = {
            'summary': session.description,
            'target_concept': session.target_concept,
            'hypothesis': self.get_current_hypothesis(session_id),
        }
        metrics = self.session_metrics.get(session_id)
        if metrics is not None:
            result.update({
                'accuracy': metrics.accuracy,
                'correct': metrics.correct,
                'incorrect': metrics.incorrect,
                'misclassified': list(metrics.misclassified),
            })
        else:
            evaluation = self._replay(session)
            if evaluation is not None:
                result.update(evaluation)
        return result

    def _replay(self, session: LearningSession) -> Optional[Dict[str, Any]]:
        """Corpus accuracy of the stored snapshot, for sessions converged elsewhere."""
        snapshot = self.store.get_dfa(session.id)
        if snapshot is None:
            return None
        items = self.store.all_items()
        concept = session.target_concept or self.config.default_concept
        return evaluate_hypothesis_on_corpus(
            DFA.from_dict(snapshot.to_dict()), items,
            ConceptPredicate(concept, items), self._controller(session.id).symbols,
        )

    def _after_run(self, controller: LStarController):
        if controller.is_complete and controller.evaluation is not None:
            self.session_metrics[controller.session_id] = controller.collector.get_metrics()

    def start_learning(self, session_name: str, target_concept: Optional[str] = None,
                       description: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a session and run L* until it needs the external oracle.

        Returns:
            Dictionary with session_id, current_query, is_complete, final_result
        """
        session = self.store.create_session(session_name, description, target_concept)
        if self.verbose:
            print(f"[Service] Started session {session.id}: {session_name}")

        controller = self._controller(session.id)
        controller.start(target_concept)
        self._after_run(controller)

        return {
            'session_id': session.id,
            'current_query': self._query_dict(self.store.oldest_pending(session.id)),
            'is_complete': controller.is_complete,
            'final_result': self._final_result(session.id),
        }

    def answer_query(self, session_id: int, response: str,
                     query_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Record an oracle answer and continue learning.

        Args:
            session_id: Session the query belongs to
            response: Free-text answer ("yes"/"no", "correct" or a counterexample)
            query_id: Query to answer; the oldest pending one if None

        Returns:
            Dictionary with answered_query, next_query, is_complete, final_result

        Raises:
            NotFoundError: If the session or the query does not exist
        """
        session = self.store.get_session(session_id)
        if query_id is None:
            query = self.store.oldest_pending(session_id)
            if query is None and session.status is not SessionStatus.COMPLETED:
                raise NotFoundError(f"No pending query in session {session_id}")
        else:
            query = self.store.get_query(query_id)

        controller = self._controller(session_id)
        answered = None
        if query is not None:
            teacher = Teacher(self.store, session_id, HumanOracle(), self.config)
            answered = teacher.answer(query.id, response)
            if self.verbose:
                print(f"[Service] Session {session_id}: query {query.id} "
                      f"({query.query_type.value}) answered '{answered.response}'")
            controller.resume(query.id)
        else:
            controller.resume()
        self._after_run(controller)

        return {
            'answered_query': self._query_dict(answered),
            'next_query': self._query_dict(self.store.oldest_pending(session_id)),
            'is_complete': controller.is_complete,
            'final_result': self._final_result(session_id),
        }

    def continue_learning(self, session_id: int) -> Dict[str, Any]:
        """Resume a session without recording a new answer."""
        controller = self._controller(session_id)
        phase = controller.resume()
        self._after_run(controller)
        return {
            'phase': phase.value,
            'next_query': self._query_dict(self.store.oldest_pending(session_id)),
            'is_complete': controller.is_complete,
            'final_result': self._final_result(session_id),
        }

    def pending_queries(self, session_id: int) -> List[Dict[str, Any]]:
        return [self._query_dict(q) for q in self.store.queries_for(session_id)
                if q.is_pending]

    def list_sessions(self) -> List[Dict[str, Any]]:
        return [_session_dict(s) for s in self.store.list_sessions()]

    def get_current_hypothesis(self, session_id: int) -> Dict[str, Any]:
        """
        Latest hypothesis snapshot of a session.

        Raises:
            NotFoundError: If the session does not exist
        """
        session = self.store.get_session(session_id)
        snapshot = self.store.get_dfa(session_id)
        if snapshot is None:
            result = {'states': [], 'alphabet': [], 'transitions': {},
                      'start_state': None, 'accept_states': []}
        else:
            result = snapshot.to_dict()
        result['target_concept'] = session.target_concept
        return result

    def get_metrics(self, session_id: int) -> Dict[str, Any]:
        """
        Query usage of a session.

        Raises:
            NotFoundError: If the session does not exist
        """
        membership = self.store.count_queries(session_id, QueryType.MEMBERSHIP)
        equivalence = self.store.count_queries(session_id, QueryType.EQUIVALENCE)
        snapshot = self.store.get_dfa(session_id)
        return {
            'total_queries': membership + equivalence,
            'membership_query_count': membership,
            'equivalence_query_count': equivalence,
            'has_learned_hypothesis': snapshot is not None,
            'hypothesis_snapshot': snapshot.to_dict() if snapshot is not None else None,
        }

    # Transformation hypotheses

    def add_example(self, session_id: int, source: Dict[str, Any], target: Dict[str, Any],
                    example_type: str = "positive") -> Dict[str, Any]:
        example = self.store.create_example(session_id, source, target,
                                            ExampleType(example_type))
        return {
            'id': example.id,
            'session_id': example.session_id,
            'source': dict(example.source),
            'target': dict(example.target),
            'example_type': example.example_type.value,
        }

    def generate_hypothesis(self, session_id: int) -> Dict[str, Any]:
        """
        Synthesize a transformation hypothesis from the session's examples.

        Raises:
            NotFoundError: If the session does not exist
            ValueError: If the session has no positive examples
        """
        positive = self.store.examples_for(session_id, ExampleType.POSITIVE)
        negative = self.store.examples_for(session_id, ExampleType.NEGATIVE)
        if not positive:
            raise ValueError("No positive examples available for hypothesis generation")

        program, description = synthesize(positive, negative)
        hypothesis = self.store.create_hypothesis(session_id, program, description,
                                                  HypothesisStatus.ACTIVE)
        for example in positive + negative:
            if example.hypothesis_id is None:
                example.hypothesis_id = hypothesis.id

        if self.verbose:
            print(f"[Service] Session {session_id}: hypothesis {hypothesis.id}: {description}")
        return {
            'hypothesis_id': hypothesis.id,
            'program': program_to_dict(program),
            'description': description,
            'status': hypothesis.status.value,
        }

    def test_hypothesis(self, hypothesis_id: int) -> Dict[str, Any]:
        """
        Replay a hypothesis on the positive examples and update its confidence.

        Every failing example is recorded as a counterexample.
        """
        hypothesis = self.store.get_hypothesis(hypothesis_id)
        positive = self.store.examples_for(hypothesis.session_id, ExampleType.POSITIVE)
        correct, total, confidence, failures = score(hypothesis.program, positive,
                                                     verbose=self.verbose)

        known = {repr(sorted(c.source.items()))
                 for c in self.store.counterexamples_for(hypothesis_id)}
        for source, message in failures:
            if repr(sorted(source.items())) not in known:
                self.store.create_counterexample(hypothesis_id, source, message)

        self.store.update_hypothesis(hypothesis_id, confidence=confidence)
        return {
            'correct_count': correct,
            'total_count': total,
            'confidence': confidence,
            'counterexamples': [
                {'source': dict(c.source), 'error_message': c.error_message}
                for c in self.store.counterexamples_for(hypothesis_id)
            ],
        }

    def evaluate_hypothesis(self, hypothesis_id: int, accept: bool) -> Dict[str, Any]:
        """
        Accept or reject a hypothesis.

        An accepted hypothesis is applied to the whole corpus, grouped by
        resulting category.
        """
        self.store.get_hypothesis(hypothesis_id)
        if not accept:
            hypothesis = self.store.update_hypothesis(hypothesis_id,
                                                      status=HypothesisStatus.REJECTED)
            return {'hypothesis_id': hypothesis_id, 'status': hypothesis.status.value,
                    'transformed': None}

        hypothesis = self.store.update_hypothesis(hypothesis_id,
                                                  status=HypothesisStatus.COMPLETED)
        result = {'hypothesis_id': hypothesis_id, 'status': hypothesis.status.value}
        try:
            result['transformed'] = apply_to_corpus(hypothesis.program, self.store.all_items())
        except Exception as e:
            if self.verbose:
                print(f"[Service] Hypothesis {hypothesis_id} failed on the corpus: {e}")
            result['transformed'] = None
            result['error'] = str(e)
        return result

    def session_stats(self, session_id: int) -> Dict[str, Any]:
        """Example and hypothesis counts of a session; session_age is in whole days."""
        session = self.store.get_session(session_id)
        examples = self.store.examples_for(session_id)
        hypotheses = self.store.hypotheses_for(session_id)
        confidences = [h.confidence for h in hypotheses]
        return {
            'total_examples': len(examples),
            'positive_examples': sum(e.example_type is ExampleType.POSITIVE for e in examples),
            'negative_examples': sum(e.example_type is ExampleType.NEGATIVE for e in examples),
            'hypothesis_count': len(hypotheses),
            'average_confidence': sum(confidences) / len(confidences) if confidences else 0.0,
            'best_confidence': max(confidences) if confidences else 0.0,
            'session_age': (utcnow() - session.created_at).days,
        }

    def global_stats(self, recent: int = 5) -> Dict[str, Any]:
        """
        Totals across every session of the store.

        The top performing session has the highest average hypothesis
        confidence; recent_activity lists the newest sessions first.
        """
        sessions = self.store.list_sessions()
        hypotheses = list(self.store.hypotheses.values())
        confidences = [h.confidence for h in hypotheses]

        top, top_confidence = None, 0.0
        for session in sessions:
            own = self.store.hypotheses_for(session.id)
            if not own:
                continue
            average = sum(h.confidence for h in own) / len(own)
            if average > top_confidence:
                top_confidence = average
                top = {'name': session.name, 'confidence': average,
                       'hypothesis_count': len(own)}

        return {
            'total_sessions': len(sessions),
            'total_examples': len(self.store.examples),
            'total_hypotheses': len(hypotheses),
            'average_confidence': sum(confidences) / len(confidences) if confidences else 0.0,
            'top_performing_session': top,
            'recent_activity': [
                {
                    'name': session.name,
                    'created_at': session.created_at.isoformat(),
                    'example_count': len(self.store.examples_for(session.id)),
                    'hypothesis_count': len(self.store.hypotheses_for(session.id)),
                }
                for session in sessions[:recent]
            ],
        }
