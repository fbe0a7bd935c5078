"""
Record types persisted by the learning engine's store.

Sessions, oracle queries and learned DFA snapshots drive the L* loop;
examples, transformation hypotheses and counterexamples back the
transformation-function mode.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple, Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class QueryType(Enum):
    MEMBERSHIP = "membership"
    EQUIVALENCE = "equivalence"


class QueryStatus(Enum):
    PENDING = "pending"
    ANSWERED = "answered"
    COUNTEREXAMPLE = "counterexample"


class ExampleType(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class HypothesisStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Item:
    """Reference corpus entry (a menu item of the demo catalog)."""
    id: int
    name: str
    price: float
    category: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'price': self.price, 'category': self.category}


@dataclass
class LearningSession:
    id: int
    name: str
    description: Optional[str] = None
    status: SessionStatus = SessionStatus.ACTIVE
    target_concept: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class OracleQuery:
    """A single question posed to the oracle."""
    id: int
    session_id: int
    query_type: QueryType
    query_data: str  # JSON payload
    response: Optional[str] = None
    status: QueryStatus = QueryStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_pending(self) -> bool:
        return self.status is QueryStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'session_id': self.session_id,
            'query_type': self.query_type.value,
            'query_data': self.query_data,
            'response': self.response,
            'status': self.status.value,
            'created_at': self.created_at.isoformat(),
        }


@dataclass
class LearnedDFA:
    """Snapshot of the current hypothesis automaton of a session."""
    session_id: int
    states: List[str]
    alphabet: List[str]
    transitions: Dict[str, Dict[str, str]]
    start_state: str
    accept_states: List[str]
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'states': list(self.states),
            'alphabet': list(self.alphabet),
            'transitions': {s: dict(t) for s, t in self.transitions.items()},
            'start_state': self.start_state,
            'accept_states': list(self.accept_states),
        }


@dataclass
class Example:
    """Labelled source/target record pair for the transformation mode."""
    id: int
    session_id: int
    source: Dict[str, Any]
    target: Dict[str, Any]
    example_type: ExampleType = ExampleType.POSITIVE
    hypothesis_id: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class TransformationHypothesis:
    id: int
    session_id: int
    program: Tuple = ()  # Tuple of synthesis.transforms steps
    description: str = ""
    confidence: float = 0.0
    status: HypothesisStatus = HypothesisStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Counterexample:
    id: int
    hypothesis_id: int
    source: Dict[str, Any]
    error_message: str
    created_at: datetime = field(default_factory=utcnow)
