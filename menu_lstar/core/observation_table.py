"""
Observation Table implementation for L* algorithm.

Maintains the state set S and experiment set E with function
T: (S ∪ S·Σ) × E → {0,1} filled through the teacher's membership queries.

Two word models are supported:
- STRING: words are strings over single-character symbols, s·a = s + a
- ATOMIC: every symbol is a whole catalog item, s·a = a and E = {""}
"""

from typing import Dict, Iterator, List, Optional, Set, Tuple

from menu_lstar.config import TableMode


class ObservationTable:
    """Observation table for L* learning with query caching."""

    def __init__(self, alphabet: List[str], teacher,
                 mode: TableMode = TableMode.STRING,
                 max_states: Optional[int] = None,
                 verbose: bool = False):
        """
        Initialize observation table.

        Args:
            alphabet: Input alphabet Σ
            teacher: Oracle gateway providing membership queries
            mode: Word model (STRING or ATOMIC)
            max_states: Optional limit on |S| for memory bounds
            verbose: Print table growth
        """
        self.mode = mode
        self.A: List[str] = list(dict.fromkeys(alphabet))
        self.teacher = teacher
        self.max_states = max_states
        self.verbose = verbose

        # Insertion-ordered sets; order decides hypothesis tie-breaks
        self.S: Dict[str, None] = {}
        self.E: Dict[str, None] = {"": None}
        if mode is TableMode.STRING:
            self.S[""] = None

        self.T: Dict[str, bool] = {}  # word → membership
        self.provisional: Set[str] = set()  # Cells answered by a pending query

        # Statistics for analysis
        self.query_count = 0
        self.cache_hits = 0

    # Word model

    def extend(self, state: str, symbol: str) -> str:
        """One-symbol extension s·a."""
        if self.mode is TableMode.ATOMIC:
            return symbol
        return state + symbol

    def split(self, word: str) -> List[str]:
        """Symbols of a word, for feeding it to a DFA."""
        if self.mode is TableMode.ATOMIC:
            return [word] if word else []
        return list(word)

    def _extensions(self) -> Iterator[str]:
        """S·Σ in a stable order."""
        if self.mode is TableMode.ATOMIC:
            yield from self.A
            return
        for s in list(self.S):
            for a in self.A:
                yield s + a

    def _prefixes(self) -> List[str]:
        """S ∪ S·Σ without duplicates, S first."""
        return list(dict.fromkeys(list(self.S) + list(self._extensions())))

    # Growth

    def add_state(self, state: str) -> bool:
        if state in self.S:
            return False
        if self.max_states is not None and len(self.S) >= self.max_states:
            if self.verbose:
                print(f"  [Table] State limit {self.max_states} reached, not adding '{state}'")
            return False
        self.S[state] = None
        return True

    def add_experiment(self, experiment: str) -> bool:
        if experiment in self.E or self.mode is TableMode.ATOMIC:
            return False
        self.E[experiment] = None
        return True

    def add_symbol(self, symbol: str) -> bool:
        if symbol in self.A:
            return False
        self.A.append(symbol)
        return True

    # Cells and rows

    def _ask(self, word: str) -> bool:
        self.query_count += 1
        result = self.teacher.membership_query(word)
        self.T[word] = result
        if self.teacher.is_settled(word):
            self.provisional.discard(word)
        else:
            self.provisional.add(word)
        return result

    def _cell(self, word: str) -> bool:
        if word in self.T:
            self.cache_hits += 1
            return self.T[word]
        return self._ask(word)

    def query(self, state: str, experiment: str) -> bool:
        """
        Membership of state·experiment.

        Returns the cached value when present. A still-pending question
        yields a provisional False that rebuild() asks again.
        """
        return self._cell(state + experiment)

    def row(self, word: str) -> Tuple[bool, ...]:
        """row(word) = (T(word·e) for e in E)."""
        return tuple(self._cell(word + e) for e in self.E)

    def rows_are_same(self, s: str, t: str) -> bool:
        return self.row(s) == self.row(t)

    def rebuild(self):
        """Recompute every cell of (S ∪ S·Σ) × E, asking provisional cells again."""
        for word in self.provisional:
            self.T.pop(word, None)
        self.provisional.clear()
        for s in self._prefixes():
            for e in self.E:
                self._cell(s + e)

    # Closure

    def _unclosed(self, extension: str, state_rows: Set[Tuple[bool, ...]]) -> bool:
        if self.mode is TableMode.ATOMIC:
            # Every catalog item is its own state
            return extension not in self.S
        return self.row(extension) not in state_rows

    def is_closed(self) -> bool:
        """Check if every extension s·a has the row of some state."""
        state_rows = {self.row(s) for s in self.S}
        return not any(self._unclosed(ext, state_rows) for ext in self._extensions())

    def make_closed(self) -> bool:
        """
        Add unclosed extensions to S until a full pass adds nothing.

        Returns:
            True if any state was added
        """
        added = False
        changed = True
        while changed:
            changed = False
            state_rows = {self.row(s) for s in self.S}
            for ext in self._extensions():
                if not self._unclosed(ext, state_rows):
                    continue
                if not self.add_state(ext):
                    # State limit reached; closure cannot progress further
                    return added
                if self.verbose:
                    print(f"  [Table] Closing row: added state '{ext}'")
                state_rows.add(self.row(ext))
                added = changed = True
        return added

    # Consistency

    def find_inconsistency(self) -> Optional[str]:
        """
        Find a distinguishing experiment for an inconsistent pair.

        Table is inconsistent if ∃s1,s2 ∈ S, a ∈ Σ:
        row(s1) = row(s2) but row(s1·a) ≠ row(s2·a)

        Returns:
            The experiment a·e separating the extensions, or None
        """
        states = list(self.S)
        for i, s1 in enumerate(states):
            for s2 in states[i + 1:]:
                if not self.rows_are_same(s1, s2):
                    continue
                for a in self.A:
                    ext1, ext2 = self.extend(s1, a), self.extend(s2, a)
                    if ext1 == ext2:
                        continue
                    for e in self.E:
                        if self._cell(ext1 + e) != self._cell(ext2 + e):
                            return a + e
        return None

    def is_consistent(self) -> bool:
        return self.find_inconsistency() is None

    def make_consistent(self) -> bool:
        """
        Add distinguishing experiments until a full pass adds nothing.

        Returns:
            True if any experiment was added
        """
        added = False
        while True:
            experiment = self.find_inconsistency()
            if experiment is None or not self.add_experiment(experiment):
                return added
            if self.verbose:
                print(f"  [Table] Inconsistency: added experiment '{experiment}'")
            added = True

    # Counterexamples and recovery

    def add_counterexample(self, ce: str, label: Optional[bool] = None):
        """
        Process counterexample.

        STRING mode adds every prefix of ce to S and ce to E (and unseen
        characters to Σ); ATOMIC mode
        adds ce as a state (and symbol). A known label settles T[ce] unless
        the teacher already holds an answer for it.
        """
        if self.mode is TableMode.ATOMIC:
            self.add_symbol(ce)
            self.add_state(ce)
        else:
            for symbol in ce:
                self.add_symbol(symbol)
            for i in range(len(ce) + 1):
                self.add_state(ce[:i])
            self.add_experiment(ce)

        if label is not None and self.teacher.lookup(ce) is None:
            self.T[ce] = label
            self.provisional.discard(ce)

    def recover_states(self):
        """Repopulate an empty S from the words already in T."""
        if self.mode is TableMode.STRING:
            self.add_state("")
        for word in list(self.T):
            if self.mode is TableMode.ATOMIC and word not in self.A:
                continue
            self.add_state(word)

    def get_statistics(self) -> Dict[str, int]:
        """Return performance statistics."""
        return {
            "states": len(self.S),
            "experiments": len(self.E),
            "cached_words": len(self.T),
            "provisional_words": len(self.provisional),
            "total_queries": self.query_count,
            "cache_hits": self.cache_hits,
            "cache_hit_rate": self.cache_hits / max(1, self.cache_hits + self.query_count)
        }

    def snapshot(self) -> Tuple[List[str], List[str], Dict[str, bool]]:
        """(S, E, T) copies, for comparing tables."""
        return list(self.S), list(self.E), dict(self.T)

    def __str__(self) -> str:
        """String representation for debugging."""
        lines = ["Observation Table:"]
        lines.append(f"  |S| = {len(self.S)}, |E| = {len(self.E)}, mode = {self.mode.value}")

        # Table visualization
        if len(self.S) <= 10:  # Only for small tables
            width = max([len(e) for e in self.E] + [3])
            lines.append("  " + " ".join(f"{e!r:>{width}}" for e in self.E))
            for s in self.S:
                row = [str(int(self.T.get(s + e, False))) for e in self.E]
                lines.append(f"{s!r:>12} " + " ".join(f"{v:>{width}}" for v in row))

        return "\n".join(lines)
