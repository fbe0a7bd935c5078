"""Tests for hypothesis construction and the DFA type."""

import pytest

from menu_lstar.config import TableMode
from menu_lstar.core.dfa import DFA
from menu_lstar.core.observation_table import ObservationTable

from test_observation_table import PredicateTeacher, contains_ab, refine


def parity_dfa():
    """Accepts words over {0, 1} with an even number of 1s."""
    return DFA(
        states=["even", "odd"],
        alphabet=["0", "1"],
        transitions={"even": {"0": "even", "1": "odd"},
                     "odd": {"0": "odd", "1": "even"}},
        initial_state="even",
        final_states={"even"},
    )


class TestFromObservationTable:

    def test_string_table_learns_substring_concept(self):
        table = ObservationTable(["a", "b"], PredicateTeacher(contains_ab))
        table.add_counterexample("ab", label=True)
        table.rebuild()
        refine(table)
        dfa = DFA.from_observation_table(table)

        assert dfa.q0 == ""
        assert dfa.states == list(table.S)
        for word in ["ab", "aab", "bab", "abba", "bbbab"]:
            assert dfa.accepts(list(word)), word
        for word in ["", "a", "b", "ba", "bbaa"]:
            assert not dfa.accepts(list(word)), word

    def test_atomic_table_accepts_positive_items(self):
        items = ["Margherita Pizza", "Caesar Salad", "Pepperoni Pizza"]
        table = ObservationTable(items, PredicateTeacher(lambda w: w.endswith("Pizza")),
                                 mode=TableMode.ATOMIC)
        table.make_closed()
        dfa = DFA.from_observation_table(table)

        assert dfa.q0 == "Margherita Pizza"
        assert dfa.F == {"Margherita Pizza", "Pepperoni Pizza"}
        assert dfa.accepts(["Pepperoni Pizza"])
        assert not dfa.accepts(["Caesar Salad"])
        assert not dfa.accepts(["Unknown Item"])

    def test_transitions_use_first_matching_state(self):
        items = ["Caesar Salad", "Tiramisu"]
        table = ObservationTable(items, PredicateTeacher(lambda w: False), mode=TableMode.ATOMIC)
        table.make_closed()
        dfa = DFA.from_observation_table(table)
        # Both rows are all-false: every transition targets the first state
        assert dfa.delta["Tiramisu"] == {"Caesar Salad": "Caesar Salad",
                                         "Tiramisu": "Caesar Salad"}

    def test_empty_states_recovered_from_rows(self):
        table = ObservationTable(["Tiramisu"], PredicateTeacher(lambda w: True),
                                 mode=TableMode.ATOMIC)
        table.T = {"Tiramisu": True}
        dfa = DFA.from_observation_table(table)
        assert dfa.states == ["Tiramisu"]
        assert dfa.F == {"Tiramisu"}

    def test_empty_table_defaults_start_state(self):
        table = ObservationTable([], PredicateTeacher(lambda w: True), mode=TableMode.ATOMIC)
        dfa = DFA.from_observation_table(table)
        assert dfa.states == []
        assert dfa.q0 == ""
        assert not dfa.accepts(["anything"])

    def test_rebuilt_tables_give_equal_hypotheses(self):
        def build():
            table = ObservationTable(["a", "b"], PredicateTeacher(contains_ab))
            table.add_counterexample("ab", label=True)
            table.rebuild()
            refine(table)
            return DFA.from_observation_table(table)

        assert build() == build()


class TestDFA:

    def test_accepts(self):
        dfa = parity_dfa()
        assert dfa.accepts([])
        assert dfa.accepts(list("0110"))
        assert not dfa.accepts(list("010"))
        assert not dfa.accepts(list("012"))

    def test_dict_round_trip_preserves_structure(self):
        dfa = parity_dfa()
        data = dfa.to_dict()
        assert data["start_state"] == "even"
        assert data["accept_states"] == ["even"]
        assert DFA.from_dict(data) == dfa

    def test_from_dict_rejects_bad_shape(self):
        with pytest.raises(ValueError):
            DFA.from_dict({"states": ["q0"]})
        with pytest.raises(ValueError):
            DFA.from_dict({"states": [], "alphabet": [], "transitions": [1],
                           "start_state": "", "accept_states": []})

    def test_minimize_merges_equivalent_states(self):
        dfa = DFA(
            states=["a", "b", "c"],
            alphabet=["x"],
            transitions={"a": {"x": "b"}, "b": {"x": "c"}, "c": {"x": "b"}},
            initial_state="a",
            final_states=set(),
        )
        minimal = dfa.minimize()
        assert len(minimal) == 1
        assert minimal.q0 == "a"
        assert minimal.delta == {"a": {"x": "a"}}

    def test_minimize_keeps_parity(self):
        minimal = parity_dfa().minimize()
        assert len(minimal) == 2
        for word in ["", "1", "11", "101", "0111"]:
            assert minimal.accepts(list(word)) == parity_dfa().accepts(list(word))

    def test_to_dot(self):
        dot = parity_dfa().to_dot()
        assert dot.startswith("digraph DFA {")
        assert '"even" [shape=doublecircle];' in dot
        assert '"even" -> "odd" [label="1"];' in dot
