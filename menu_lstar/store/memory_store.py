"""
In-memory record store for learning sessions.

Stands in for the persistence collaborator: create/read/update/upsert of
sessions, oracle queries, DFA snapshots and reference items keyed by
identifier. Each session's oracle queries are kept in a FIFO queue so the
oldest unanswered query is found without scanning the whole history.
"""

import itertools
from collections import Counter
from dataclasses import replace
from typing import Dict, List, Optional, Iterable, Any

from .records import (
    Counterexample,
    Example,
    ExampleType,
    Item,
    LearnedDFA,
    LearningSession,
    OracleQuery,
    QueryStatus,
    QueryType,
    SessionStatus,
    TransformationHypothesis,
    utcnow,
)


class NotFoundError(LookupError):
    """Raised when a referenced session, query or hypothesis does not exist."""
    pass


class QueryQueue:
    """Queries of one session in creation order plus the oldest pending index."""

    def __init__(self):
        self.entries: List[OracleQuery] = []
        self.head = 0  # Index of the oldest entry that may still be pending

    def append(self, query: OracleQuery):
        self.entries.append(query)

    def _advance(self):
        while self.head < len(self.entries) and not self.entries[self.head].is_pending:
            self.head += 1

    def oldest_pending(self, query_type: Optional[QueryType] = None) -> Optional[OracleQuery]:
        self._advance()
        for query in self.entries[self.head:]:
            if query.is_pending and (query_type is None or query.query_type is query_type):
                return query
        return None

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


class MemoryStore:
    """Record store keyed by identifier, one instance shared by all sessions."""

    def __init__(self, items: Optional[Iterable[Item]] = None):
        self._ids = {name: itertools.count(1) for name in
                     ("session", "query", "item", "example", "hypothesis", "counterexample")}
        self.sessions: Dict[int, LearningSession] = {}
        self.items: List[Item] = []
        self.queries: Dict[int, OracleQuery] = {}
        self.queues: Dict[int, QueryQueue] = {}
        self.query_counts: Counter = Counter()  # (session_id, query_type) -> rows
        self.dfas: Dict[int, LearnedDFA] = {}
        self.examples: Dict[int, Example] = {}
        self.hypotheses: Dict[int, TransformationHypothesis] = {}
        self.counterexamples: Dict[int, Counterexample] = {}

        if items is not None:
            self.seed_items(items)

    # Sessions

    def create_session(self, name: str, description: Optional[str] = None,
                       target_concept: Optional[str] = None) -> LearningSession:
        session = LearningSession(
            id=next(self._ids["session"]),
            name=name,
            description=description,
            status=SessionStatus.ACTIVE,
            target_concept=target_concept,
        )
        self.sessions[session.id] = session
        self.queues[session.id] = QueryQueue()
        return session

    def get_session(self, session_id: int) -> LearningSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return session

    def update_session(self, session_id: int, **changes) -> LearningSession:
        session = self.get_session(session_id)
        for key, value in changes.items():
            if not hasattr(session, key):
                raise AttributeError(f"LearningSession has no field '{key}'")
            setattr(session, key, value)
        session.updated_at = utcnow()
        return session

    def list_sessions(self) -> List[LearningSession]:
        return sorted(self.sessions.values(), key=lambda s: (s.created_at, s.id), reverse=True)

    # Reference corpus

    def seed_items(self, items: Iterable[Any]) -> List[Item]:
        """Replace the reference corpus. Accepts Item objects or dicts."""
        self._ids["item"] = itertools.count(1)
        seeded = []
        for entry in items:
            if isinstance(entry, Item):
                entry = entry.to_dict()
            seeded.append(Item(
                id=next(self._ids["item"]),
                name=entry['name'],
                price=float(entry.get('price', 0.0)),
                category=entry.get('category') or "",
            ))
        self.items = seeded
        return list(self.items)

    def all_items(self) -> List[Item]:
        return list(self.items)

    def find_item(self, name: str) -> Optional[Item]:
        wanted = name.strip().lower()
        for item in self.items:
            if item.name.lower() == wanted:
                return item
        return None

    # Oracle queries

    def create_query(self, session_id: int, query_type: QueryType, query_data: str,
                     response: Optional[str] = None,
                     status: QueryStatus = QueryStatus.PENDING) -> OracleQuery:
        self.get_session(session_id)
        query = OracleQuery(
            id=next(self._ids["query"]),
            session_id=session_id,
            query_type=query_type,
            query_data=query_data,
            response=response,
            status=status,
        )
        self.queries[query.id] = query
        self.queues[session_id].append(query)
        self.query_counts[(session_id, query_type)] += 1
        return query

    def get_query(self, query_id: int) -> OracleQuery:
        query = self.queries.get(query_id)
        if query is None:
            raise NotFoundError(f"Query not found: {query_id}")
        return query

    def queries_for(self, session_id: int, query_type: Optional[QueryType] = None,
                    status: Optional[QueryStatus] = None) -> List[OracleQuery]:
        """Queries of a session in creation order, optionally filtered."""
        self.get_session(session_id)
        return [q for q in self.queues[session_id]
                if (query_type is None or q.query_type is query_type)
                and (status is None or q.status is status)]

    def count_queries(self, session_id: int, query_type: Optional[QueryType] = None) -> int:
        self.get_session(session_id)
        if query_type is None:
            return len(self.queues[session_id])
        return self.query_counts[(session_id, query_type)]

    def oldest_pending(self, session_id: int,
                       query_type: Optional[QueryType] = None) -> Optional[OracleQuery]:
        self.get_session(session_id)
        return self.queues[session_id].oldest_pending(query_type)

    def record_response(self, query_id: int, response: str,
                        status: QueryStatus) -> OracleQuery:
        query = self.get_query(query_id)
        query.response = response
        query.status = status
        return query

    # Learned DFA snapshots

    def upsert_dfa(self, snapshot: LearnedDFA) -> LearnedDFA:
        self.get_session(snapshot.session_id)
        snapshot = replace(snapshot, updated_at=utcnow())
        self.dfas[snapshot.session_id] = snapshot
        return snapshot

    def get_dfa(self, session_id: int) -> Optional[LearnedDFA]:
        return self.dfas.get(session_id)

    def count_dfa_snapshots(self, session_id: int) -> int:
        return 1 if session_id in self.dfas else 0

    # Examples, transformation hypotheses, counterexamples

    def create_example(self, session_id: int, source: Dict[str, Any], target: Dict[str, Any],
                       example_type: ExampleType = ExampleType.POSITIVE) -> Example:
        self.get_session(session_id)
        example = Example(
            id=next(self._ids["example"]),
            session_id=session_id,
            source=dict(source),
            target=dict(target),
            example_type=example_type,
        )
        self.examples[example.id] = example
        return example

    def examples_for(self, session_id: int,
                     example_type: Optional[ExampleType] = None) -> List[Example]:
        self.get_session(session_id)
        return [e for e in self.examples.values()
                if e.session_id == session_id
                and (example_type is None or e.example_type is example_type)]

    def create_hypothesis(self, session_id: int, program, description: str,
                          status) -> TransformationHypothesis:
        self.get_session(session_id)
        hypothesis = TransformationHypothesis(
            id=next(self._ids["hypothesis"]),
            session_id=session_id,
            program=program,
            description=description,
            status=status,
        )
        self.hypotheses[hypothesis.id] = hypothesis
        return hypothesis

    def get_hypothesis(self, hypothesis_id: int) -> TransformationHypothesis:
        hypothesis = self.hypotheses.get(hypothesis_id)
        if hypothesis is None:
            raise NotFoundError(f"Hypothesis not found: {hypothesis_id}")
        return hypothesis

    def hypotheses_for(self, session_id: int) -> List[TransformationHypothesis]:
        self.get_session(session_id)
        return [h for h in self.hypotheses.values() if h.session_id == session_id]

    def update_hypothesis(self, hypothesis_id: int, **changes) -> TransformationHypothesis:
        hypothesis = self.get_hypothesis(hypothesis_id)
        for key, value in changes.items():
            setattr(hypothesis, key, value)
        hypothesis.updated_at = utcnow()
        return hypothesis

    def create_counterexample(self, hypothesis_id: int, source: Dict[str, Any],
                              error_message: str) -> Counterexample:
        self.get_hypothesis(hypothesis_id)
        counterexample = Counterexample(
            id=next(self._ids["counterexample"]),
            hypothesis_id=hypothesis_id,
            source=dict(source),
            error_message=error_message,
        )
        self.counterexamples[counterexample.id] = counterexample
        return counterexample

    def counterexamples_for(self, hypothesis_id: int) -> List[Counterexample]:
        return [c for c in self.counterexamples.values() if c.hypothesis_id == hypothesis_id]
