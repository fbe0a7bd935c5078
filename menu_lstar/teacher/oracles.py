"""
Oracle capabilities that answer queries on behalf of the teacher.

Every capability shares one interface:
- Corpus (answers from the static reference corpus)
- Human (defers every question to an external answerer)
- Hybrid (corpus for catalog items, human for everything else)

Returning None from either method means "no answer yet": the teacher then
records a pending query for the external oracle.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Optional, Any

from menu_lstar.config import OracleMode
from menu_lstar.store.records import Item
from .responses import CORRECT


class ConceptPredicate:
    """
    Ground truth for a target concept over the reference corpus.

    A candidate is a member when the concept occurs in it as a
    case-insensitive substring, or when it names a corpus item whose
    category equals the concept.
    """

    def __init__(self, concept: str, items: Iterable[Item]):
        self.concept = concept
        self._needle = concept.strip().lower()
        self._categories = {item.name.lower(): item.category.lower() for item in items}

    def __call__(self, candidate: str) -> bool:
        text = candidate.strip().lower()
        if self._needle and self._needle in text:
            return True
        category = self._categories.get(text)
        return category is not None and category == self._needle

    def __repr__(self) -> str:
        return f"ConceptPredicate({self.concept!r})"


class MembershipOracle(ABC):
    """Abstract base class for oracle capabilities."""

    def __init__(self, **kwargs):
        self.total_queries = 0
        self.answered_queries = 0
        self.test_words: List[str] = []

    @abstractmethod
    def answer_membership(self, candidate: str) -> Optional[bool]:
        """Answer 'is candidate in the target concept?' or None to defer."""
        pass

    @abstractmethod
    def find_counterexample(self, hypothesis, classify: Callable[[str], bool]) -> Optional[str]:
        """
        Answer an equivalence query.

        Args:
            hypothesis: Current hypothesis DFA
            classify: Maps a word to the hypothesis' verdict

        Returns:
            A counterexample, "correct", or None to defer
        """
        pass

    def set_test_words(self, words: Iterable[str]):
        """Words replayed first when searching for counterexamples."""
        self.test_words = list(dict.fromkeys(words))

    def get_statistics(self) -> Dict[str, Any]:
        return {
            'type': self.__class__.__name__,
            'total_queries': self.total_queries,
            'answered_queries': self.answered_queries,
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__}()"


class CorpusOracle(MembershipOracle):
    """Answers every query immediately from the reference corpus."""

    def __init__(self, predicate: ConceptPredicate, items: Iterable[Item],
                 normalize: Callable[[str], str] = lambda w: w, **kwargs):
        super().__init__(**kwargs)
        self.predicate = predicate
        self.normalize = normalize
        self.items = list(items)

    def answer_membership(self, candidate: str) -> Optional[bool]:
        self.total_queries += 1
        self.answered_queries += 1
        return self.predicate(candidate)

    def find_counterexample(self, hypothesis, classify: Callable[[str], bool]) -> Optional[str]:
        self.total_queries += 1
        self.answered_queries += 1
        corpus_words = [self.normalize(item.name) for item in self.items]
        for word in list(dict.fromkeys(self.test_words + corpus_words)):
            if classify(word) != self.predicate(word):
                return word
        return CORRECT


class HumanOracle(MembershipOracle):
    """Defers every question to the external answerer."""

    def answer_membership(self, candidate: str) -> Optional[bool]:
        self.total_queries += 1
        return None

    def find_counterexample(self, hypothesis, classify: Callable[[str], bool]) -> Optional[str]:
        self.total_queries += 1
        return None


class HybridOracle(CorpusOracle):
    """Corpus answers for catalog items, the external answerer for the rest."""

    def __init__(self, predicate: ConceptPredicate, items: Iterable[Item],
                 normalize: Callable[[str], str] = lambda w: w, **kwargs):
        super().__init__(predicate, items, normalize, **kwargs)
        self._known = {normalize(item.name) for item in self.items}

    def answer_membership(self, candidate: str) -> Optional[bool]:
        if candidate in self._known:
            return super().answer_membership(candidate)
        self.total_queries += 1
        return None

    def find_counterexample(self, hypothesis, classify: Callable[[str], bool]) -> Optional[str]:
        self.total_queries += 1
        return None


def create_oracle(mode: OracleMode, predicate: ConceptPredicate, items: Iterable[Item],
                  normalize: Callable[[str], str] = lambda w: w) -> MembershipOracle:
    """
    Factory method for creating oracle capabilities.

    Raises:
        ValueError: If mode is unknown
    """
    oracle_constructors = {
        OracleMode.CORPUS: lambda: CorpusOracle(predicate, items, normalize),
        OracleMode.HUMAN: lambda: HumanOracle(),
        OracleMode.HYBRID: lambda: HybridOracle(predicate, items, normalize),
    }

    if mode not in oracle_constructors:
        raise ValueError(
            f"Unknown oracle mode: {mode}. "
            f"Available modes: {[m.value for m in oracle_constructors]}"
        )

    return oracle_constructors[mode]()
