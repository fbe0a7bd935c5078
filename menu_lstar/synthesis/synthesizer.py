"""
Example-driven synthesis of record transformations.

Heuristic pattern detection over (source, target) pairs: field renames,
category suffixes dropped from names, category lookup tables and constant
numeric factors. Candidate programs are scored against the positive
examples; a candidate reproducing any negative example is discarded.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .transforms import (
    CategoryLookup,
    CopyField,
    RenameField,
    StripSuffix,
    TransformError,
    TransformProgram,
    UnitConversion,
    apply_program,
    describe_program,
)

Pair = Tuple[Dict[str, Any], Dict[str, Any]]

PASSTHROUGH: TransformProgram = (RenameField("name", "title"),)


def _as_pairs(examples: Iterable[Any]) -> List[Pair]:
    """Accept Example records or (source, target) tuples."""
    pairs = []
    for example in examples:
        if hasattr(example, 'source') and hasattr(example, 'target'):
            pairs.append((example.source, example.target))
        else:
            source, target = example
            pairs.append((source, target))
    return pairs


def _detect_field_moves(pairs: Sequence[Pair]) -> List[Any]:
    """Renames and copies for target fields the sources do not have."""
    source_keys = list(pairs[0][0])
    target_keys = list(pairs[0][1])
    steps = []
    used = set()

    for tkey in target_keys:
        if tkey in source_keys:
            continue
        exact = [s for s in source_keys
                 if all(src.get(s) == tgt.get(tkey) for src, tgt in pairs)]
        # Source values that contain the target, e.g. names with a suffix
        partial = [s for s in source_keys
                   if all(isinstance(src.get(s), str) and isinstance(tgt.get(tkey), str)
                          and tgt[tkey] in src[s] for src, tgt in pairs)]
        for skey in exact + partial:
            if skey in used:
                continue
            if skey in target_keys:
                steps.append(CopyField(skey, tkey))
            else:
                steps.append(RenameField(skey, tkey))
                used.add(skey)
            break
    return steps


def _detect_suffix(pairs: Sequence[Pair], moves: List[Any],
                   suffix_field: str = "category") -> Optional[StripSuffix]:
    """Suffix stripping of suffix_field from a moved field, scoped to the categories it holds for."""
    stripped, kept = set(), set()
    for step in moves:
        for src, tgt in pairs:
            value, target, suffix = src.get(step.source), tgt.get(step.target), src.get(suffix_field)
            if not all(isinstance(v, str) for v in (value, target, suffix)) or not suffix:
                continue
            if value == target:
                if value.endswith(" " + suffix):
                    kept.add(suffix)
            elif value == f"{target} {suffix}":
                stripped.add(suffix)
            else:
                break
        else:
            if not stripped or stripped & kept:
                stripped, kept = set(), set()
                continue
            only_for = () if not kept else tuple(sorted(stripped))
            return StripSuffix(step.target, suffix_field, " ", only_for)
        stripped, kept = set(), set()
    return None


def _detect_lookup(pairs: Sequence[Pair], field: str = "category") -> Optional[CategoryLookup]:
    mapping: Dict[str, Any] = {}
    for src, tgt in pairs:
        if field not in src or field not in tgt:
            return None
        try:
            hash(src[field])
        except TypeError:
            return None
        previous = mapping.setdefault(src[field], tgt[field])
        if previous != tgt[field]:
            return None
    if all(k == v for k, v in mapping.items()):
        return None
    table = tuple((k, v) for k, v in mapping.items() if k != v)
    return CategoryLookup(field, table)


def _detect_factor(pairs: Sequence[Pair], field: str = "price") -> Optional[UnitConversion]:
    sources, targets = [], []
    for src, tgt in pairs:
        try:
            sources.append(float(src[field]))
            targets.append(float(tgt[field]))
        except (KeyError, TypeError, ValueError):
            return None
    sources, targets = np.array(sources), np.array(targets)
    nonzero = sources != 0
    if not nonzero.any():
        return None
    ratios = targets[nonzero] / sources[nonzero]
    factor = float(np.round(np.median(ratios), 6))
    if np.isclose(factor, 1.0) or not np.allclose(ratios, factor, rtol=1e-2):
        return None
    return UnitConversion(field, factor)


def detect_program(pairs: Sequence[Pair]) -> TransformProgram:
    """Program assembled from every pattern found in the pairs."""
    if not pairs:
        return ()
    moves = _detect_field_moves(pairs)
    program = list(moves)
    for step in (_detect_suffix(pairs, [m for m in moves if isinstance(m, RenameField)]),
                 _detect_lookup(pairs),
                 _detect_factor(pairs)):
        if step is not None:
            program.append(step)
    return tuple(program)


def score(program: TransformProgram, examples: Iterable[Any],
          verbose: bool = False) -> Tuple[int, int, float, List[Tuple[Dict[str, Any], str]]]:
    """
    Replay program against positive examples.

    Returns:
        (correct, total, confidence, failures) where failures pairs each
        mismatching source with an error message
    """
    correct, failures = 0, []
    pairs = _as_pairs(examples)
    for source, target in pairs:
        try:
            actual = apply_program(program, source)
        except Exception as e:
            # Any step failure counts as incorrect
            message = str(e) if isinstance(e, TransformError) else f"{type(e).__name__}: {e}"
            failures.append((source, message))
            if verbose:
                print(f"  [Synthesis] Step failed on {source}: {e}")
            continue
        if actual == target:
            correct += 1
        else:
            failures.append((source, f"expected {target}, got {actual}"))

    total = len(pairs)
    confidence = correct / total if total else 0.0
    return correct, total, confidence, failures


def _reproduces_any(program: TransformProgram, negative: Sequence[Pair]) -> bool:
    for source, target in negative:
        try:
            if apply_program(program, source) == target:
                return True
        except Exception:
            continue
    return False


def synthesize(positive: Iterable[Any],
               negative: Iterable[Any] = ()) -> Tuple[TransformProgram, str]:
    """
    Best-effort transformation program for the given examples.

    Raises:
        ValueError: If there are no positive examples
    """
    positive, negative = _as_pairs(positive), _as_pairs(negative)
    if not positive:
        raise ValueError("No positive examples provided")

    candidates = []
    detected = detect_program(positive)
    if detected:
        candidates.append(detected)
    candidates.append(PASSTHROUGH)

    best, best_correct = PASSTHROUGH, -1
    for program in candidates:
        if _reproduces_any(program, negative):
            continue
        correct = score(program, positive)[0]
        if correct > best_correct:
            best, best_correct = program, correct

    description = (f"Generated hypothesis based on {len(positive)} positive examples: "
                   f"{describe_program(best)}")
    return best, description


def apply_to_corpus(program: TransformProgram, items: Iterable[Any],
                    group_by: str = "category") -> Dict[str, List[Dict[str, Any]]]:
    """
    Transform every corpus item, grouped by the resulting group_by value.

    Raises:
        TransformError: If an item lacks a field the program needs
    """
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for item in items:
        record = item.to_dict() if hasattr(item, 'to_dict') else dict(item)
        transformed = apply_program(program, record)
        groups.setdefault(str(transformed.get(group_by) or ""), []).append(transformed)
    return groups
