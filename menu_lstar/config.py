"""
Configuration for L* learning sessions.

This module provides a unified interface for configuring the observation
table mode, the oracle capability and the query budgets of a session.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional
from enum import Enum


class TableMode(Enum):
    """How words of the observation table are formed."""
    STRING = "string"  # Words over single-character symbols, s·a = s + a
    ATOMIC = "atomic"  # Every catalog item is one symbol, s·a = a


class OracleMode(Enum):
    """Which capability answers membership and equivalence queries."""
    CORPUS = "corpus"
    HUMAN = "human"
    HYBRID = "hybrid"


SAMPLE_STRATEGIES = ("random", "fixed")


@dataclass
class LearningConfig:
    """Configuration for one learning session."""

    table_mode: TableMode = TableMode.STRING
    oracle_mode: OracleMode = OracleMode.HUMAN

    # Query budgets (per session)
    max_membership_queries: int = 8
    max_equivalence_queries: int = 3

    # Upper bound on |S| for memory bounds
    max_states: Optional[int] = 64

    # Seeding of S from the reference corpus
    sample_strategy: str = "random"
    random_seed: int = 0

    # Target concept used when none is given and none can be derived
    default_concept: str = "pizza"
    case_sensitive: bool = False

    verbose: bool = False

    def __post_init__(self):
        if isinstance(self.table_mode, str):
            self.table_mode = TableMode(self.table_mode)
        if isinstance(self.oracle_mode, str):
            self.oracle_mode = OracleMode(self.oracle_mode)
        if self.sample_strategy not in SAMPLE_STRATEGIES:
            raise ValueError(
                f"Unknown sample strategy: {self.sample_strategy}. "
                f"Available strategies: {list(SAMPLE_STRATEGIES)}"
            )
        if self.max_membership_queries < 0 or self.max_equivalence_queries < 0:
            raise ValueError("Query budgets must be non-negative")

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            'table_mode': self.table_mode.value,
            'oracle_mode': self.oracle_mode.value,
            'max_membership_queries': self.max_membership_queries,
            'max_equivalence_queries': self.max_equivalence_queries,
            'max_states': self.max_states,
            'sample_strategy': self.sample_strategy,
            'random_seed': self.random_seed,
            'default_concept': self.default_concept,
            'case_sensitive': self.case_sensitive,
            'verbose': self.verbose,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LearningConfig':
        """Build a config from a dictionary produced by to_dict()."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


def get_default_configs() -> Dict[str, LearningConfig]:
    """Get named configuration presets."""
    return {
        "interactive": LearningConfig(
            table_mode=TableMode.STRING,
            oracle_mode=OracleMode.HUMAN,
        ),
        "automatic": LearningConfig(
            table_mode=TableMode.STRING,
            oracle_mode=OracleMode.CORPUS,
            max_membership_queries=400,
            max_equivalence_queries=10,
        ),
        "hybrid": LearningConfig(
            table_mode=TableMode.ATOMIC,
            oracle_mode=OracleMode.HYBRID,
        ),
        "atomic_catalog": LearningConfig(
            table_mode=TableMode.ATOMIC,
            oracle_mode=OracleMode.CORPUS,
            max_membership_queries=32,
            sample_strategy="fixed",
        ),
    }
