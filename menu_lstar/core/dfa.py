"""
Deterministic Finite Automaton (DFA) implementation.

A DFA is formally a 5-tuple (Q, Σ, δ, q₀, F) where Q is the state set,
Σ is the alphabet, δ: Q × Σ → Q is the transition function,
q₀ is the initial state, and F is the set of accepting states.

States keep the insertion order of the observation table they were built
from, so two hypotheses built from the same table compare equal.
"""

from typing import Any, Dict, List, Optional, Set

from menu_lstar.config import TableMode


class DFA:
    """Deterministic Finite Automaton used as the L* hypothesis."""

    def __init__(self,
                 states: Optional[List[str]] = None,
                 alphabet: Optional[List[str]] = None,
                 transitions: Optional[Dict[str, Dict[str, str]]] = None,
                 initial_state: str = "",
                 final_states: Optional[Set[str]] = None):
        self.states: List[str] = list(states or [])
        self.alphabet: List[str] = list(alphabet or [])
        self.delta: Dict[str, Dict[str, str]] = transitions or {}
        self.q0 = initial_state
        self.F: Set[str] = set(final_states or set())

    @classmethod
    def from_observation_table(cls, table) -> 'DFA':
        """
        Construct the hypothesis from an observation table.

        States are S in insertion order; a state accepts when its row at the
        empty experiment is true; δ(s, a) is the first state whose row equals
        row(s·a). An empty S is repopulated from the rows in T first.
        """
        if not table.S:
            table.recover_states()

        states = list(table.S)
        rows = {s: table.row(s) for s in states}

        if table.mode is TableMode.STRING and "" in table.S:
            initial = ""
        else:
            initial = states[0] if states else ""

        final = {s for s in states if table.query(s, "")}

        delta: Dict[str, Dict[str, str]] = {}
        for state in states:
            delta[state] = {}
            for symbol in table.A:
                target_row = table.row(table.extend(state, symbol))
                # Linear scan: first match in S order wins
                for candidate in states:
                    if rows[candidate] == target_row:
                        delta[state][symbol] = candidate
                        break

        return cls(states=states, alphabet=list(table.A), transitions=delta,
                   initial_state=initial, final_states=final)

    def accepts(self, word: List[str]) -> bool:
        """
        Determine if DFA accepts given word.

        Args:
            word: List of symbols from alphabet

        Returns:
            True if word leads to accepting state; unknown symbols and
            undefined transitions reject
        """
        current_state = self.q0
        if current_state not in self.delta and word:
            return False

        for symbol in word:
            current_state = self.delta.get(current_state, {}).get(symbol)
            if current_state is None:
                return False

        return current_state in self.F

    def minimize(self) -> 'DFA':
        """
        Return the equivalent DFA with indistinguishable states merged.

        Partition refinement starting from accepting vs non-accepting states;
        each block is named by its first state in the original order.
        """
        reachable = self._reachable_states()
        block_of = {s: (s in self.F) for s in reachable}

        while True:
            signature = {
                s: (block_of[s],) + tuple(
                    block_of.get(self.delta.get(s, {}).get(a)) for a in self.alphabet
                )
                for s in reachable
            }
            ids: Dict[tuple, int] = {}
            refined = {s: ids.setdefault(signature[s], len(ids)) for s in reachable}
            if len(ids) == len(set(block_of.values())):
                break
            block_of = refined

        representative: Dict[Any, str] = {}
        for s in reachable:
            representative.setdefault(block_of[s], s)

        states = list(representative.values())
        delta = {
            rep: {a: representative[block_of[t]]
                  for a, t in self.delta.get(rep, {}).items() if t in block_of}
            for rep in states
        }
        return DFA(
            states=states,
            alphabet=self.alphabet,
            transitions=delta,
            initial_state=representative[block_of[self.q0]] if self.q0 in block_of else self.q0,
            final_states={s for s in states if s in self.F},
        )

    def _reachable_states(self) -> List[str]:
        if self.q0 not in self.delta:
            return [s for s in self.states if s == self.q0]
        seen = {self.q0: None}
        frontier = [self.q0]
        while frontier:
            state = frontier.pop(0)
            for symbol in self.alphabet:
                target = self.delta.get(state, {}).get(symbol)
                if target is not None and target not in seen:
                    seen[target] = None
                    frontier.append(target)
        return [s for s in self.states if s in seen]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable form (LearnedDFA snapshot layout)."""
        return {
            'states': list(self.states),
            'alphabet': list(self.alphabet),
            'transitions': {s: dict(t) for s, t in self.delta.items()},
            'start_state': self.q0,
            'accept_states': [s for s in self.states if s in self.F],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DFA':
        """
        Rebuild a DFA from to_dict() output.

        Raises:
            ValueError: If a required field is missing or has the wrong shape
        """
        try:
            return cls(
                states=list(data['states']),
                alphabet=list(data['alphabet']),
                transitions={s: dict(t) for s, t in data['transitions'].items()},
                initial_state=data['start_state'],
                final_states=set(data['accept_states']),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Invalid DFA description: {e}") from e

    def __eq__(self, other) -> bool:
        if not isinstance(other, DFA):
            return NotImplemented
        return (self.states == other.states and self.q0 == other.q0
                and self.F == other.F and self.delta == other.delta)

    def __len__(self) -> int:
        """Return number of states."""
        return len(self.states)

    def __str__(self) -> str:
        """String representation for debugging."""
        return (f"DFA(|Q|={len(self.states)}, |Σ|={len(self.alphabet)}, "
                f"q0={self.q0!r}, |F|={len(self.F)})")

    def to_dot(self) -> str:
        """
        Generate Graphviz DOT representation.

        Returns:
            DOT format string for visualization
        """
        lines = ["digraph DFA {", "    rankdir=LR;", "    node [shape=circle];"]

        for state in self.states:
            if state in self.F:
                lines.append(f'    "{state}" [shape=doublecircle];')

        lines.append('    __start__ [shape=none, label=""];')
        lines.append(f'    __start__ -> "{self.q0}";')

        for state in self.states:
            # Group transitions by target
            trans_groups: Dict[str, List[str]] = {}
            for symbol, target in self.delta.get(state, {}).items():
                trans_groups.setdefault(target, []).append(symbol)

            for target, symbols in trans_groups.items():
                label = ",".join(sorted(symbols))
                lines.append(f'    "{state}" -> "{target}" [label="{label}"];')

        lines.append("}")
        return "\n".join(lines)
