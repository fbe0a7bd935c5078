"""
L* learning controller based on Angluin (1987).

Drives one learning session: grows the observation table until it is closed
and consistent, proposes the resulting hypothesis, and absorbs
counterexamples. Whenever a question has no stored answer the controller
returns to its caller; resume() rebuilds the table from the stored answers
and carries on. Query budgets bound the whole run.
"""

from collections import Counter
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

from menu_lstar.benchmarks.metrics import MetricsCollector, evaluate_hypothesis_on_corpus
from menu_lstar.config import LearningConfig, TableMode
from menu_lstar.store.memory_store import MemoryStore, NotFoundError
from menu_lstar.store.records import (
    Item,
    LearnedDFA,
    QueryStatus,
    QueryType,
    SessionStatus,
)
from menu_lstar.teacher.oracles import ConceptPredicate, MembershipOracle, create_oracle
from menu_lstar.teacher.responses import CORRECT, MalformedPayload, payload_candidate, parse_bool
from menu_lstar.teacher.teacher import Teacher
from .dfa import DFA
from .observation_table import ObservationTable


class LearningPhase(Enum):
    INITIALIZING = "initializing"
    BUILDING_TABLE = "building_table"
    CHECKING_CLOSURE_CONSISTENCY = "checking_closure_consistency"
    AWAITING_MEMBERSHIP = "awaiting_membership"
    AWAITING_EQUIVALENCE = "awaiting_equivalence"
    REFINING = "refining"
    CONVERGED = "converged"


SUSPENDED_PHASES = (LearningPhase.AWAITING_MEMBERSHIP, LearningPhase.AWAITING_EQUIVALENCE)


class LStarController:
    """L* learning controller for a single session."""

    def __init__(self, store: MemoryStore, session_id: int,
                 config: Optional[LearningConfig] = None,
                 oracle: Optional[MembershipOracle] = None):
        """
        Initialize L* controller.

        Args:
            store: Record store holding the session and its queries
            session_id: Session to drive
            config: Learning configuration
            oracle: Oracle capability; built from config.oracle_mode if None

        Raises:
            NotFoundError: If the session does not exist
        """
        self.store = store
        self.session_id = session_id
        self.config = config or LearningConfig()
        self.verbose = self.config.verbose
        self.store.get_session(session_id)

        self.items: List[Item] = store.all_items()
        self._oracle = oracle

        self.phase = LearningPhase.INITIALIZING
        self.target_concept: Optional[str] = None
        self.predicate: Optional[ConceptPredicate] = None
        self.teacher: Optional[Teacher] = None
        self.table: Optional[ObservationTable] = None
        self.hypothesis: Optional[DFA] = None
        self.evaluation: Optional[Dict[str, Any]] = None

        # Statistics
        self.iterations = 0
        self.counterexamples: List[str] = []
        self.hypotheses_history: List[Dict[str, Any]] = []
        self.collector = MetricsCollector()

    @property
    def session(self):
        return self.store.get_session(self.session_id)

    @property
    def is_suspended(self) -> bool:
        return self.phase in SUSPENDED_PHASES

    @property
    def is_complete(self) -> bool:
        return self.phase is LearningPhase.CONVERGED

    # Word model

    def normalize(self, word: str) -> str:
        """Canonical spelling of an input under the configured word model."""
        word = word.strip()
        if self.config.table_mode is TableMode.ATOMIC:
            item = self.store.find_item(word)
            return item.name if item is not None else word
        return word if self.config.case_sensitive else word.lower()

    def alphabet(self) -> List[str]:
        """Register every corpus item into the alphabet."""
        if self.config.table_mode is TableMode.ATOMIC:
            return [item.name for item in self.items]
        return sorted({ch for item in self.items for ch in self.normalize(item.name)})

    def symbols(self, word: str) -> List[str]:
        """Input symbols of a word, for feeding it to a hypothesis."""
        word = self.normalize(word)
        if self.config.table_mode is TableMode.ATOMIC:
            return [word] if word else []
        return list(word)

    def classify(self, word: str) -> bool:
        """Verdict of the current hypothesis on a word."""
        if self.hypothesis is None:
            return False
        return self.hypothesis.accepts(self.symbols(word))

    # Setup

    def _derive_concept(self) -> Optional[str]:
        """Most common category among candidates answered 'yes'."""
        categories = Counter()
        for query in self.store.queries_for(self.session_id, QueryType.MEMBERSHIP,
                                            QueryStatus.ANSWERED):
            if not parse_bool(query.response):
                continue
            try:
                item = self.store.find_item(payload_candidate(query.query_data))
            except MalformedPayload as e:
                if self.verbose:
                    print(f"  [L*] Ignoring query {query.id} while deriving concept: {e}")
                continue
            if item is not None and item.category:
                categories[item.category.lower()] += 1
        if not categories:
            return None
        return categories.most_common(1)[0][0]

    def _resolve_concept(self, target_concept: Optional[str]) -> str:
        if target_concept:
            return target_concept
        if self.session.target_concept:
            return self.session.target_concept
        return self._derive_concept() or self.config.default_concept

    def _sample(self) -> List[Item]:
        """Corpus sample bounded by the membership budget."""
        size = min(len(self.items), self.config.max_membership_queries)
        if size == 0:
            return []
        if self.config.sample_strategy == "fixed":
            return self.items[:size]
        # Seeded per session so resume() draws the same sample
        rng = np.random.default_rng([self.config.random_seed, self.session_id])
        chosen = rng.choice(len(self.items), size=size, replace=False)
        return [self.items[i] for i in sorted(chosen)]

    def _setup(self, target_concept: Optional[str] = None):
        concept = self._resolve_concept(target_concept)
        if self.session.target_concept != concept:
            self.store.update_session(self.session_id, target_concept=concept)
        self.target_concept = concept
        self.predicate = ConceptPredicate(concept, self.items)

        oracle = self._oracle or create_oracle(
            self.config.oracle_mode, self.predicate, self.items, self.normalize
        )
        self.teacher = Teacher(self.store, self.session_id, oracle, self.config, concept)
        self.table = self._fresh_table()

    def _fresh_table(self) -> ObservationTable:
        """Seeded table with every stored counterexample replayed."""
        table = ObservationTable(
            self.alphabet(), self.teacher,
            mode=self.config.table_mode,
            max_states=self.config.max_states,
            verbose=self.verbose,
        )

        sample = self._sample()
        if self.config.table_mode is TableMode.ATOMIC:
            for item in sample:
                table.add_state(item.name)
        else:
            self.teacher.oracle.set_test_words(self.normalize(item.name) for item in sample)

        self.counterexamples = []
        for response, refuted in self.teacher.counterexamples():
            ce = self.normalize(response or "")
            if not ce:
                if self.verbose:
                    print("  [L*] Skipping blank counterexample")
                continue
            label = None
            if refuted is not None:
                try:
                    label = not DFA.from_dict(refuted).accepts(table.split(ce))
                except ValueError as e:
                    if self.verbose:
                        print(f"  [L*] Counterexample '{ce}' has no usable hypothesis: {e}")
            table.add_counterexample(ce, label)
            self.counterexamples.append(ce)
        return table

    # Entry points

    def start(self, target_concept: Optional[str] = None) -> LearningPhase:
        """
        Start learning.

        Returns:
            The phase the controller stopped in
        """
        self.phase = LearningPhase.INITIALIZING
        self._setup(target_concept)
        if self.verbose:
            print(f"Starting L* for session {self.session_id}: concept '{self.target_concept}', "
                  f"{len(self.table.A)} symbols, {self.config.table_mode.value} mode, "
                  f"{self.config.oracle_mode.value} oracle")
        return self._run()

    def resume(self, answered_query_id: Optional[int] = None) -> LearningPhase:
        """
        Rebuild the table from the stored answers and continue learning.

        Idempotent: with no new answers in between, two calls produce the
        same S, E and T.

        Raises:
            NotFoundError: If the query does not belong to this session
        """
        if answered_query_id is not None:
            query = self.store.get_query(answered_query_id)
            if query.session_id != self.session_id:
                raise NotFoundError(
                    f"Query {answered_query_id} not found in session {self.session_id}"
                )

        if self.session.status is SessionStatus.COMPLETED:
            self._load_snapshot()
            self.phase = LearningPhase.CONVERGED
            return self.phase

        self.phase = LearningPhase.INITIALIZING
        self._setup()
        return self._run()

    # Main loop

    def _run(self) -> LearningPhase:
        while True:
            self.iterations += 1

            self.phase = LearningPhase.BUILDING_TABLE
            self.table.rebuild()

            self.phase = LearningPhase.CHECKING_CLOSURE_CONSISTENCY
            self._refine_table()

            hypothesis = DFA.from_observation_table(self.table)
            self.hypothesis = hypothesis
            self._persist(hypothesis)
            self._record_iteration(hypothesis)

            if self.verbose:
                print(f"Iteration {self.iterations}: hypothesis with {len(hypothesis.states)} "
                      f"states, {len(hypothesis.F)} accepting "
                      f"(|S|={len(self.table.S)}, |E|={len(self.table.E)})")

            if self.teacher.has_pending(QueryType.MEMBERSHIP):
                self.phase = LearningPhase.AWAITING_MEMBERSHIP
                return self.phase

            self.phase = LearningPhase.AWAITING_EQUIVALENCE
            result = self.teacher.equivalence_query(hypothesis, classify=self.classify)

            if result is None:
                return self.phase

            if result == CORRECT:
                self.evaluate()
                return self.phase

            self.phase = LearningPhase.REFINING
            ce = self.normalize(result)
            if not ce:
                # Blank reply: the question is spent, ask again
                if self.verbose:
                    print("  [L*] Ignoring blank counterexample")
                continue
            if self.verbose:
                print(f"  Counterexample found: '{ce}' (length {len(ce)})")
            self.counterexamples.append(ce)
            self.collector.record_counterexample(ce)
            self.table.add_counterexample(ce, not self.classify(ce))

    def _refine_table(self):
        """
        Make observation table closed and consistent.

        Inconsistencies are handled before closure; the pass repeats until
        neither step changes the table.
        """
        changes = True
        while changes:
            changes = False
            if self.table.make_consistent():
                changes = True
            if self.table.make_closed():
                changes = True

    # Results

    def _persist(self, hypothesis: DFA):
        self.store.upsert_dfa(LearnedDFA(session_id=self.session_id, **hypothesis.to_dict()))

    def _load_snapshot(self):
        snapshot = self.store.get_dfa(self.session_id)
        if snapshot is not None:
            self.hypothesis = DFA.from_dict(snapshot.to_dict())

    def _record_iteration(self, hypothesis: DFA):
        self.collector.record_lstar_progress(self.iterations, len(self.table.S), len(self.table.E))
        self.collector.record_hypothesis(len(hypothesis.states), len(hypothesis.F))
        self.hypotheses_history.append({
            'iteration': self.iterations,
            'states': len(hypothesis.states),
            'accept_states': sorted(hypothesis.F),
            'counterexamples': len(self.counterexamples),
        })

    def evaluate(self) -> Dict[str, Any]:
        """
        Replay the final hypothesis against the full corpus and close the session.

        Persists the snapshot, writes an accuracy summary into the session
        description and marks the session completed.
        """
        if self.hypothesis is None:
            self.hypothesis = DFA.from_observation_table(self.table)

        evaluation = evaluate_hypothesis_on_corpus(
            self.hypothesis, self.items, self.predicate, self.symbols,
        )
        self.evaluation = evaluation
        self.collector.record_accuracy(evaluation)
        self.collector.record_queries(self.teacher.membership_count, self.teacher.equivalence_count)

        self._persist(self.hypothesis)
        metrics = self.collector.get_metrics()
        self.store.update_session(self.session_id, description=metrics.summary(),
                                  status=SessionStatus.COMPLETED)
        self.phase = LearningPhase.CONVERGED

        if self.verbose:
            print(f"Converged after {self.iterations} iterations: {metrics.summary()}")
        return evaluation

    def get_statistics(self) -> Dict[str, Any]:
        """
        Return learning statistics.

        Returns:
            Dictionary with performance metrics
        """
        stats = {
            "phase": self.phase.value,
            "iterations": self.iterations,
            "target_concept": self.target_concept,
            "final_states": len(self.hypothesis.states) if self.hypothesis else 0,
            "counterexamples": len(self.counterexamples),
            "avg_ce_length": sum(len(ce) for ce in self.counterexamples) / max(1, len(self.counterexamples)),
        }
        if self.table is not None:
            stats["table_stats"] = self.table.get_statistics()
        if self.teacher is not None:
            stats["teacher_stats"] = self.teacher.get_statistics()
        if self.evaluation is not None:
            stats["accuracy"] = self.evaluation['accuracy']
        return stats
