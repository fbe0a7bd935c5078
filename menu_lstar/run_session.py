#!/usr/bin/env python
"""
Command-line entry point for menu L* learning sessions.

Runs a session over the demo menu corpus. Pending oracle questions are
either answered interactively on stdin or, with --auto-answer, by the
target concept's ground truth.

Usage:
    menu-lstar --concept pizza --preset hybrid
    menu-lstar --concept salad --auto-answer --verbose
    menu-lstar --compare --auto-answer --output results.csv
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from menu_lstar.benchmarks.metrics import BenchmarkResults
from menu_lstar.config import LearningConfig, TableMode, get_default_configs
from menu_lstar.core.dfa import DFA
from menu_lstar.extraction.learning_service import LearningService
from menu_lstar.store.corpus import DEMO_ITEMS
from menu_lstar.store.memory_store import MemoryStore
from menu_lstar.teacher.oracles import ConceptPredicate
from menu_lstar.teacher.responses import CORRECT


def print_header():
    print("=" * 70)
    print("Menu L* Learning Session")
    print("=" * 70)


def make_auto_answerer(service: LearningService, concept: str) -> Callable[[Dict[str, Any]], str]:
    """Answer pending queries with the concept's ground truth over the corpus."""
    items = service.store.all_items()
    predicate = ConceptPredicate(concept, items)
    config = service.config

    def symbols(name: str) -> List[str]:
        if config.table_mode is TableMode.ATOMIC:
            return [name]
        return list(name if config.case_sensitive else name.lower())

    def answer(query: Dict[str, Any]) -> str:
        payload = query['payload'] or {}
        if query['query_type'] == 'membership':
            return "yes" if predicate(payload.get('candidate', "")) else "no"
        try:
            hypothesis = DFA.from_dict(payload.get('hypothesis') or {})
        except ValueError:
            return CORRECT
        for item in items:
            if hypothesis.accepts(symbols(item.name)) != predicate(item.name):
                return item.name
        return CORRECT

    return answer


def ask_on_stdin(query: Dict[str, Any]) -> str:
    payload = query['payload'] or {}
    if query['query_type'] == 'membership':
        return input(f"\n{payload.get('question', query['query_data'])}\n> ")
    hypothesis = payload.get('hypothesis', {})
    print(f"\nProposed hypothesis for '{payload.get('target_concept')}':")
    print(f"  accept states: {hypothesis.get('accept_states')}")
    print(f"  {payload.get('instructions', '')}")
    return input("> ")


def run_session(service: LearningService, name: str, concept: str,
                answer: Callable[[Dict[str, Any]], str],
                max_rounds: int = 200) -> Dict[str, Any]:
    """Start a session and answer its queries until it completes."""
    result = service.start_learning(name, target_concept=concept)
    session_id = result['session_id']
    query = result['current_query']
    rounds = 0

    while not result['is_complete'] and query is not None and rounds < max_rounds:
        response = answer(query)
        if service.verbose:
            print(f"  Q{query['id']} ({query['query_type']}) -> {response!r}")
        result = service.answer_query(session_id, response, query_id=query['id'])
        query = result['next_query']
        rounds += 1

    return {
        'session_id': session_id,
        'is_complete': result['is_complete'],
        'final_result': result['final_result'],
        'metrics': service.get_metrics(session_id),
    }


def print_outcome(outcome: Dict[str, Any]):
    final = outcome['final_result']
    metrics = outcome['metrics']
    print(f"\nSession {outcome['session_id']}: "
          f"{'completed' if outcome['is_complete'] else 'incomplete'}")
    print(f"  Queries: {metrics['membership_query_count']} membership, "
          f"{metrics['equivalence_query_count']} equivalence")
    if final is None:
        return
    print(f"  {final['summary']}")
    hypothesis = final['hypothesis']
    print(f"  Accept states: {hypothesis['accept_states']}")
    if final.get('misclassified'):
        print(f"  Misclassified: {', '.join(final['misclassified'])}")


def write_dot(service: LearningService, session_id: int, path: Path):
    """Write the minimized hypothesis of a session as Graphviz DOT."""
    hypothesis = DFA.from_dict(service.get_current_hypothesis(session_id))
    path.write_text(hypothesis.minimize().to_dot() + "\n")
    print(f"  Hypothesis graph saved to: {path}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command line interface."""
    presets = get_default_configs()

    parser = argparse.ArgumentParser(
        description="Active learning (L*) of menu-item concepts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Answer the questions yourself
  menu-lstar --concept pizza --preset hybrid

  # Let the corpus ground truth answer
  menu-lstar --concept salad --auto-answer

  # Save the learned automaton for Graphviz
  menu-lstar --concept pizza --preset hybrid --auto-answer --dot pizza.dot

  # Compare every preset and export the metrics
  menu-lstar --compare --auto-answer --output results.csv
        """
    )
    parser.add_argument('--concept', type=str, default=None,
                        help='Target concept (default: the preset default, "pizza")')
    parser.add_argument('--preset', choices=sorted(presets), default='interactive',
                        help='Configuration preset (default: interactive)')
    parser.add_argument('--table-mode', choices=[m.value for m in TableMode], default=None,
                        help='Override the observation table mode')
    parser.add_argument('--max-membership', type=int, default=None,
                        help='Override the membership query budget')
    parser.add_argument('--max-equivalence', type=int, default=None,
                        help='Override the equivalence query budget')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for corpus sampling')
    parser.add_argument('--auto-answer', action='store_true',
                        help='Answer pending queries with the concept ground truth')
    parser.add_argument('--compare', action='store_true',
                        help='Run every preset and print a comparison')
    parser.add_argument('--output', type=str, default=None,
                        help='CSV file for the comparison results')
    parser.add_argument('--dot', type=str, default=None,
                        help='Write the minimized hypothesis as Graphviz DOT')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable verbose output')

    args = parser.parse_args(argv)

    def build_config(preset: str) -> LearningConfig:
        data = presets[preset].to_dict()
        overrides = {
            'table_mode': args.table_mode,
            'max_membership_queries': args.max_membership,
            'max_equivalence_queries': args.max_equivalence,
            'random_seed': args.seed,
        }
        data.update({k: v for k, v in overrides.items() if v is not None})
        data['verbose'] = args.verbose
        return LearningConfig.from_dict(data)

    print_header()
    if args.compare and not args.auto_answer:
        print("Error: --compare needs --auto-answer")
        return 1

    try:
        if args.compare:
            results = BenchmarkResults()
            for preset in sorted(presets):
                config = build_config(preset)
                service = LearningService(MemoryStore(DEMO_ITEMS), config)
                concept = args.concept or config.default_concept
                outcome = run_session(service, f"{preset} ({concept})", concept,
                                      make_auto_answerer(service, concept))
                print(f"\n[{preset}]", end="")
                print_outcome(outcome)
                metrics = service.session_metrics.get(outcome['session_id'])
                if metrics is not None:
                    results.add_result(preset, metrics)
            results.print_summary()
            if args.output:
                results.export_to_csv(Path(args.output))
                print(f"\nResults saved to: {args.output}")
            return 0

        config = build_config(args.preset)
        service = LearningService(MemoryStore(DEMO_ITEMS), config)
        concept = args.concept or config.default_concept
        print(f"\nConfiguration:")
        print(f"  Concept: {concept}")
        print(f"  Table mode: {config.table_mode.value}")
        print(f"  Oracle: {config.oracle_mode.value}")
        print(f"  Budgets: {config.max_membership_queries} membership, "
              f"{config.max_equivalence_queries} equivalence")

        answer = make_auto_answerer(service, concept) if args.auto_answer else ask_on_stdin
        outcome = run_session(service, f"CLI session ({concept})", concept, answer)
        print_outcome(outcome)
        if args.dot:
            write_dot(service, outcome['session_id'], Path(args.dot))
        return 0

    except (KeyboardInterrupt, EOFError):
        print("\n\nSession interrupted by user.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
