"""Record store for sessions, oracle queries and learned automata."""

from .records import (
    Counterexample,
    Example,
    ExampleType,
    HypothesisStatus,
    Item,
    LearnedDFA,
    LearningSession,
    OracleQuery,
    QueryStatus,
    QueryType,
    SessionStatus,
    TransformationHypothesis,
)
from .memory_store import MemoryStore, NotFoundError, QueryQueue
from .corpus import DEMO_ITEMS, DEMO_EXAMPLES

__all__ = [
    "Counterexample",
    "Example",
    "ExampleType",
    "HypothesisStatus",
    "Item",
    "LearnedDFA",
    "LearningSession",
    "OracleQuery",
    "QueryStatus",
    "QueryType",
    "SessionStatus",
    "TransformationHypothesis",
    "MemoryStore",
    "NotFoundError",
    "QueryQueue",
    "DEMO_ITEMS",
    "DEMO_EXAMPLES",
]
