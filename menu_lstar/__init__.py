"""
Menu L*

Active automata learning (Angluin's L*) over a menu-item catalog, with
membership and equivalence questions answered by a reference corpus, a
human, or both, plus example-driven synthesis of record transformations.
"""

from .config import LearningConfig, OracleMode, TableMode, get_default_configs
from .core.lstar import LearningPhase, LStarController
from .extraction.learning_service import LearningService
from .teacher.teacher import Teacher

__version__ = "0.1.0"
__all__ = [
    "LearningConfig",
    "OracleMode",
    "TableMode",
    "get_default_configs",
    "LearningPhase",
    "LStarController",
    "LearningService",
    "Teacher",
]
