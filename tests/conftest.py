"""Shared fixtures for the learning engine tests."""

import pytest

from menu_lstar.config import LearningConfig, OracleMode, TableMode
from menu_lstar.store.corpus import DEMO_ITEMS
from menu_lstar.store.memory_store import MemoryStore
from menu_lstar.teacher.oracles import ConceptPredicate, CorpusOracle, HumanOracle
from menu_lstar.teacher.teacher import Teacher


PIZZA_SALAD = [
    {'name': 'Margherita Pizza', 'price': 9.99, 'category': 'Pizza'},
    {'name': 'Caesar Salad', 'price': 7.5, 'category': 'Salad'},
]

FIVE_ITEMS = PIZZA_SALAD + [
    {'name': 'Pepperoni Pizza', 'price': 10.99, 'category': 'Pizza'},
    {'name': 'Greek Salad', 'price': 8.5, 'category': 'Salad'},
    {'name': 'Tiramisu', 'price': 5.5, 'category': 'Dessert'},
]


@pytest.fixture
def demo_store():
    return MemoryStore(DEMO_ITEMS)


@pytest.fixture
def pizza_salad_store():
    return MemoryStore(PIZZA_SALAD)


@pytest.fixture
def five_item_store():
    return MemoryStore(FIVE_ITEMS)


@pytest.fixture
def human_atomic_config():
    return LearningConfig(table_mode=TableMode.ATOMIC, oracle_mode=OracleMode.HUMAN)


@pytest.fixture
def corpus_atomic_config():
    return LearningConfig(table_mode=TableMode.ATOMIC, oracle_mode=OracleMode.CORPUS,
                          max_membership_queries=32, sample_strategy="fixed")


@pytest.fixture
def human_teacher(pizza_salad_store):
    """Teacher that defers every question, on a fresh session."""
    session = pizza_salad_store.create_session("test", target_concept="pizza")
    return Teacher(pizza_salad_store, session.id, HumanOracle(), LearningConfig(),
                   target_concept="pizza")


@pytest.fixture
def corpus_teacher(demo_store):
    """Teacher answering from the demo corpus with the 'pizza' concept."""
    session = demo_store.create_session("test", target_concept="pizza")
    items = demo_store.all_items()
    oracle = CorpusOracle(ConceptPredicate("pizza", items), items)
    config = LearningConfig(oracle_mode=OracleMode.CORPUS, max_membership_queries=1000,
                            max_equivalence_queries=10)
    return Teacher(demo_store, session.id, oracle, config, target_concept="pizza")
