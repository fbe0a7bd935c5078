"""Teacher components: oracle gateway and oracle capabilities."""

from .oracles import (
    ConceptPredicate,
    CorpusOracle,
    HumanOracle,
    HybridOracle,
    MembershipOracle,
    create_oracle,
)
from .responses import MalformedPayload, parse_bool
from .teacher import Teacher

__all__ = [
    "ConceptPredicate",
    "CorpusOracle",
    "HumanOracle",
    "HybridOracle",
    "MembershipOracle",
    "create_oracle",
    "MalformedPayload",
    "parse_bool",
    "Teacher",
]
