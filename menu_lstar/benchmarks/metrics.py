"""
Metrics collection and storage for learning sessions.

This module tracks query usage and hypothesis quality of L* runs and
aggregates several sessions for comparison.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Any
import json
import numpy as np
import pandas as pd
from pathlib import Path


@dataclass
class SessionMetrics:
    """Metrics collected during a single learning session.

    Accuracy is the share of corpus items the hypothesis classifies the way
    the target concept does.
    """

    total_time: float = 0.0

    # Query counts
    membership_queries: int = 0
    equivalence_queries: int = 0
    counterexamples_found: int = 0

    counterexample_lengths: List[int] = field(default_factory=list)

    # Hypothesis properties
    num_states: int = 0
    num_accept_states: int = 0

    # Replay against the reference corpus
    correct: int = 0
    incorrect: int = 0
    accuracy: float = 0.0
    misclassified: List[str] = field(default_factory=list)

    converged: bool = False

    # L* algorithm metrics
    iterations: int = 0
    observation_table_size: Tuple[int, int] = (0, 0)  # (|S|, |E|)

    @property
    def total_queries(self) -> int:
        return self.membership_queries + self.equivalence_queries

    @property
    def avg_counterexample_length(self) -> float:
        """Average length of counterexamples found."""
        if not self.counterexample_lengths:
            return 0.0
        return float(np.mean(self.counterexample_lengths))

    @property
    def queries_per_state(self) -> float:
        """Average number of membership queries per hypothesis state."""
        if self.num_states == 0:
            return 0.0
        return self.membership_queries / self.num_states

    def summary(self) -> str:
        """Human-readable accuracy summary stored on the session."""
        total = self.correct + self.incorrect
        return (f"Accuracy {self.accuracy:.1%} ({self.correct}/{total} items correct), "
                f"{self.num_states} states, {self.membership_queries} membership and "
                f"{self.equivalence_queries} equivalence queries")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_time': self.total_time,
            'membership_queries': self.membership_queries,
            'equivalence_queries': self.equivalence_queries,
            'counterexamples_found': self.counterexamples_found,
            'counterexample_lengths': list(self.counterexample_lengths),
            'num_states': self.num_states,
            'num_accept_states': self.num_accept_states,
            'correct': self.correct,
            'incorrect': self.incorrect,
            'accuracy': self.accuracy,
            'misclassified': list(self.misclassified),
            'converged': self.converged,
            'iterations': self.iterations,
            'observation_table_size': list(self.observation_table_size),
        }


def evaluate_hypothesis_on_corpus(hypothesis, items, predicate: Callable[[str], bool],
                                  split: Callable[[str], List[str]]) -> Dict[str, Any]:
    """
    Replay a hypothesis against every corpus item.

    Args:
        hypothesis: DFA to evaluate
        items: Reference corpus
        predicate: Ground truth membership of an item name
        split: Maps an item name to the hypothesis' input symbols

    Returns:
        Dictionary with correct, incorrect, accuracy and misclassified names
    """
    names = [item.name for item in items]
    if not names:
        return {'correct': 0, 'incorrect': 0, 'accuracy': 0.0, 'misclassified': []}

    predicted = np.array([hypothesis.accepts(split(name)) for name in names], dtype=bool)
    expected = np.array([predicate(name) for name in names], dtype=bool)
    matches = predicted == expected

    return {
        'correct': int(matches.sum()),
        'incorrect': int((~matches).sum()),
        'accuracy': float(matches.mean()),
        'misclassified': [name for name, ok in zip(names, matches) if not ok],
    }


class MetricsCollector:
    """Collects metrics during a learning run."""

    def __init__(self):
        self.metrics = SessionMetrics()
        self._start_time = time.time()

    def record_counterexample(self, counterexample: str):
        """Record a counterexample found."""
        self.metrics.counterexamples_found += 1
        self.metrics.counterexample_lengths.append(len(counterexample))

    def record_lstar_progress(self, iteration: int, s_size: int, e_size: int):
        """Record L* algorithm progress.

        Args:
            iteration: Current iteration number
            s_size: Size of S in observation table
            e_size: Size of E in observation table
        """
        self.metrics.iterations = iteration
        self.metrics.observation_table_size = (s_size, e_size)

    def record_queries(self, membership: int, equivalence: int):
        self.metrics.membership_queries = membership
        self.metrics.equivalence_queries = equivalence

    def record_hypothesis(self, num_states: int, num_accept_states: int):
        self.metrics.num_states = num_states
        self.metrics.num_accept_states = num_accept_states

    def record_accuracy(self, evaluation: Dict[str, Any]):
        """Record the result of evaluate_hypothesis_on_corpus()."""
        self.metrics.correct = evaluation['correct']
        self.metrics.incorrect = evaluation['incorrect']
        self.metrics.accuracy = evaluation['accuracy']
        self.metrics.misclassified = list(evaluation['misclassified'])
        self.metrics.converged = True

    def get_metrics(self) -> SessionMetrics:
        """Get the collected metrics."""
        self.metrics.total_time = time.time() - self._start_time
        return self.metrics


@dataclass
class BenchmarkResults:
    """Stores and compares the metrics of several sessions."""

    results: Dict[str, List[SessionMetrics]] = field(default_factory=dict)
    # Structure: {config_name: [metrics1, metrics2, ...]}

    def add_result(self, config_name: str, metrics: SessionMetrics):
        """Add a session result."""
        self.results.setdefault(config_name, []).append(metrics)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert results to a pandas DataFrame for analysis."""
        data = []
        for config_name, metrics_list in self.results.items():
            for i, metrics in enumerate(metrics_list):
                data.append({
                    'config': config_name,
                    'run': i,
                    'total_time': metrics.total_time,
                    'membership_queries': metrics.membership_queries,
                    'equivalence_queries': metrics.equivalence_queries,
                    'total_queries': metrics.total_queries,
                    'counterexamples': metrics.counterexamples_found,
                    'num_states': metrics.num_states,
                    'accuracy': metrics.accuracy,
                    'converged': metrics.converged,
                    'avg_counterexample_length': metrics.avg_counterexample_length,
                    'queries_per_state': metrics.queries_per_state,
                    'iterations': metrics.iterations,
                    'obs_table_s': metrics.observation_table_size[0],
                    'obs_table_e': metrics.observation_table_size[1],
                })

        return pd.DataFrame(data)

    def export_to_csv(self, path: Path):
        """Export results to CSV file."""
        self.to_dataframe().to_csv(path, index=False)

    def save_to_json(self, path: Path):
        """Save raw results to JSON file."""
        serializable = {name: [m.to_dict() for m in metrics_list]
                        for name, metrics_list in self.results.items()}
        with open(path, 'w') as f:
            json.dump(serializable, f, indent=2)

    def print_summary(self):
        """Print a summary of the collected sessions."""
        df = self.to_dataframe()
        if df.empty:
            print("No results collected")
            return

        print("\n" + "=" * 70)
        print("SESSION RESULTS SUMMARY")
        print("=" * 70)

        summary = df.groupby('config').agg({
            'accuracy': 'mean',
            'membership_queries': 'mean',
            'equivalence_queries': 'mean',
            'num_states': 'mean',
            'converged': 'mean',
        }).round(3)

        summary.columns = [
            'Accuracy',
            'Avg Membership Q',
            'Avg Equivalence Q',
            'Avg States',
            'Converged Rate',
        ]

        print(summary.to_string())
