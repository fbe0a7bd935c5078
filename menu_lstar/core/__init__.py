"""Core components for L* algorithm."""

from .dfa import DFA
from .observation_table import ObservationTable
from .lstar import LearningPhase, LStarController

__all__ = ["DFA", "ObservationTable", "LearningPhase", "LStarController"]
