"""
Teacher (oracle gateway) for one learning session.

Answers membership and equivalence queries from the session's stored
answers first, otherwise asks the injected oracle capability and, when it
defers, records a durable pending query for the external oracle.
"""

from typing import Callable, Dict, List, Optional, Tuple, Any

from menu_lstar.config import LearningConfig
from menu_lstar.store.memory_store import MemoryStore, NotFoundError
from menu_lstar.store.records import OracleQuery, QueryStatus, QueryType
from .oracles import MembershipOracle
from .responses import (
    CORRECT,
    MalformedPayload,
    equivalence_payload,
    is_correct,
    membership_payload,
    parse_bool,
    payload_candidate,
    payload_hypothesis,
)


class Teacher:
    """
    Teacher for L* - mediates membership and equivalence queries.

    Query budgets are counted per session over every created query row,
    answered or pending. At most one query of each kind is left pending at a
    time; answers are recorded only through answer().
    """

    def __init__(self, store: MemoryStore, session_id: int,
                 oracle: MembershipOracle,
                 config: Optional[LearningConfig] = None,
                 target_concept: Optional[str] = None):
        self.store = store
        self.session_id = session_id
        self.oracle = oracle
        self.config = config or LearningConfig()
        self.target_concept = target_concept
        self.verbose = self.config.verbose

        # Membership rows indexed by candidate; rows are append-only
        self._by_candidate: Dict[str, List[OracleQuery]] = {}
        self._indexed = 0

        # Statistics
        self.cache_hits = 0
        self.provisional_answers = 0
        self.budget_refusals = 0

        # Fails fast when the session does not exist
        self.store.get_session(session_id)

    # Budgets

    @property
    def membership_count(self) -> int:
        return self.store.count_queries(self.session_id, QueryType.MEMBERSHIP)

    @property
    def equivalence_count(self) -> int:
        return self.store.count_queries(self.session_id, QueryType.EQUIVALENCE)

    @property
    def membership_budget_exhausted(self) -> bool:
        return self.membership_count >= self.config.max_membership_queries

    @property
    def equivalence_budget_exhausted(self) -> bool:
        return self.equivalence_count >= self.config.max_equivalence_queries

    # Membership

    def _refresh_index(self):
        if self.membership_count == self._indexed:
            return
        rows = self.store.queries_for(self.session_id, QueryType.MEMBERSHIP)
        for query in rows[self._indexed:]:
            try:
                candidate = payload_candidate(query.query_data)
            except MalformedPayload as e:
                if self.verbose:
                    print(f"  [Teacher] Skipping query {query.id}: {e}")
                continue
            self._by_candidate.setdefault(candidate, []).append(query)
        self._indexed = len(rows)

    def lookup(self, candidate: str) -> Optional[bool]:
        """Stored answer for candidate, or None if it was never answered."""
        self._refresh_index()
        for query in self._by_candidate.get(candidate, []):
            if query.status is QueryStatus.ANSWERED:
                return parse_bool(query.response)
        return None

    def is_pending(self, candidate: str) -> bool:
        self._refresh_index()
        return any(q.is_pending for q in self._by_candidate.get(candidate, []))

    def is_settled(self, candidate: str) -> bool:
        """Whether the current answer for candidate is final."""
        if self.lookup(candidate) is not None:
            return True
        if self.is_pending(candidate):
            return False
        return self.membership_budget_exhausted

    def has_pending(self, query_type: QueryType) -> bool:
        return self.store.oldest_pending(self.session_id, query_type) is not None

    def membership_query(self, candidate: str) -> bool:
        """
        Is candidate a member of the target concept?

        Returns the stored answer when there is one. Otherwise returns a
        provisional False, creating at most one new query row (immediately
        answered when the oracle capability can answer it, pending if not).
        """
        answer = self.lookup(candidate)
        if answer is not None:
            self.cache_hits += 1
            return answer

        if self.is_pending(candidate):
            self.provisional_answers += 1
            return False

        if self.membership_budget_exhausted:
            self.budget_refusals += 1
            return False

        if self.has_pending(QueryType.MEMBERSHIP):
            self.provisional_answers += 1
            return False

        answer = self.oracle.answer_membership(candidate)
        payload = membership_payload(
            candidate, self.target_concept, self._category_examples(),
            asked=self.membership_count + 1,
            budget=self.config.max_membership_queries,
        )

        if answer is None:
            query = self.store.create_query(self.session_id, QueryType.MEMBERSHIP, payload)
            if self.verbose:
                print(f"  [Teacher] Membership query {query.id} pending: '{candidate}'")
            self.provisional_answers += 1
            return False

        self.store.create_query(
            self.session_id, QueryType.MEMBERSHIP, payload,
            response="true" if answer else "false",
            status=QueryStatus.ANSWERED,
        )
        return answer

    def membership_queries(self, words: List[str]) -> List[bool]:
        """Batch membership queries."""
        return [self.membership_query(w) for w in words]

    # Equivalence

    def equivalence_query(self, hypothesis,
                          classify: Optional[Callable[[str], bool]] = None) -> Optional[str]:
        """
        Does hypothesis equal the target concept?

        Returns:
            A counterexample, "correct", or None when the question is
            waiting for the external oracle
        """
        if classify is None:
            classify = lambda word: hypothesis.accepts(list(word))

        if self._accepted(hypothesis.to_dict()):
            return CORRECT

        if self.equivalence_budget_exhausted:
            if self.verbose:
                print(f"  [Teacher] Equivalence budget of "
                      f"{self.config.max_equivalence_queries} exhausted, assuming correct")
            return CORRECT

        if self.has_pending(QueryType.EQUIVALENCE):
            return None

        result = self.oracle.find_counterexample(hypothesis, classify)
        payload = equivalence_payload(
            hypothesis.to_dict(), self.target_concept,
            asked=self.equivalence_count + 1,
            budget=self.config.max_equivalence_queries,
        )

        if result is None:
            query = self.store.create_query(self.session_id, QueryType.EQUIVALENCE, payload)
            if self.verbose:
                print(f"  [Teacher] Equivalence query {query.id} pending "
                      f"({len(hypothesis.states)} states)")
            return None

        status = QueryStatus.ANSWERED if is_correct(result) else QueryStatus.COUNTEREXAMPLE
        self.store.create_query(self.session_id, QueryType.EQUIVALENCE, payload,
                                response=result, status=status)
        return CORRECT if is_correct(result) else result

    def _accepted(self, hypothesis: Dict[str, Any]) -> bool:
        """Whether this exact hypothesis was already declared correct."""
        for query in self.store.queries_for(self.session_id, QueryType.EQUIVALENCE,
                                            QueryStatus.ANSWERED):
            try:
                if payload_hypothesis(query.query_data) == hypothesis:
                    return True
            except MalformedPayload:
                continue
        return False

    def counterexamples(self) -> List[Tuple[str, Optional[Dict[str, Any]]]]:
        """
        Counterexamples received so far, oldest first.

        Each entry pairs the counterexample with the serialized hypothesis it
        refuted, or None when the stored payload is malformed.
        """
        result = []
        for query in self.store.queries_for(self.session_id, QueryType.EQUIVALENCE,
                                            QueryStatus.COUNTEREXAMPLE):
            try:
                hypothesis = payload_hypothesis(query.query_data)
            except MalformedPayload as e:
                if self.verbose:
                    print(f"  [Teacher] Counterexample query {query.id} has no usable hypothesis: {e}")
                hypothesis = None
            result.append((query.response, hypothesis))
        return result

    # Answers

    def answer(self, query_id: int, response: str) -> OracleQuery:
        """
        Record the external oracle's answer to a pending query.

        Raises:
            NotFoundError: If the query does not exist in this session
        """
        query = self.store.get_query(query_id)
        if query.session_id != self.session_id:
            raise NotFoundError(f"Query {query_id} not found in session {self.session_id}")

        if not query.is_pending:
            if self.verbose:
                print(f"  [Teacher] Query {query_id} already answered, ignoring new response")
            return query

        response = (response or "").strip()
        if query.query_type is QueryType.MEMBERSHIP:
            status = QueryStatus.ANSWERED
        elif is_correct(response):
            status = QueryStatus.ANSWERED
            response = CORRECT
        else:
            status = QueryStatus.COUNTEREXAMPLE

        return self.store.record_response(query_id, response, status)

    def oldest_pending(self) -> Optional[OracleQuery]:
        return self.store.oldest_pending(self.session_id)

    def _category_examples(self, per_category: int = 3) -> Dict[str, List[str]]:
        examples: Dict[str, List[str]] = {}
        for item in self.store.all_items():
            names = examples.setdefault(item.category or "uncategorized", [])
            if len(names) < per_category:
                names.append(item.name)
        return examples

    def get_statistics(self) -> Dict[str, Any]:
        """Get teacher statistics."""
        return {
            'membership_queries': self.membership_count,
            'equivalence_queries': self.equivalence_count,
            'max_membership_queries': self.config.max_membership_queries,
            'max_equivalence_queries': self.config.max_equivalence_queries,
            'cache_hits': self.cache_hits,
            'provisional_answers': self.provisional_answers,
            'budget_refusals': self.budget_refusals,
            'oracle': self.oracle.get_statistics(),
        }
