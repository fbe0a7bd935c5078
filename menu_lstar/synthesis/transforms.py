"""
Record transformation primitives and their interpreter.

A transformation program is a tuple of steps applied in order to a copy of
the source record. Each step is a frozen dataclass tagged with a ``kind`` so
programs serialize to plain JSON and compare structurally.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple


class TransformError(Exception):
    """Raised when a step cannot be applied to a record."""
    pass


def _require(record: Dict[str, Any], field: str) -> Any:
    if field not in record:
        raise TransformError(f"Record has no field '{field}'")
    return record[field]


@dataclass(frozen=True)
class RenameField:
    """Move the value of ``source`` to ``target``."""
    kind: ClassVar[str] = "rename_field"
    source: str
    target: str

    def apply(self, record: Dict[str, Any]):
        value = _require(record, self.source)
        del record[self.source]
        record[self.target] = value

    def describe(self) -> str:
        return f"rename {self.source} -> {self.target}"


@dataclass(frozen=True)
class CopyField:
    """Copy the value of ``source`` into ``target``, keeping ``source``."""
    kind: ClassVar[str] = "copy_field"
    source: str
    target: str

    def apply(self, record: Dict[str, Any]):
        record[self.target] = _require(record, self.source)

    def describe(self) -> str:
        return f"copy {self.source} -> {self.target}"


@dataclass(frozen=True)
class StripSuffix:
    """
    Remove the value of ``suffix_field`` from the end of ``field``.

    With ``only_for`` set, only records whose ``suffix_field`` value is listed
    there are touched.
    """
    kind: ClassVar[str] = "strip_suffix"
    field: str
    suffix_field: str
    separator: str = " "
    only_for: Tuple[str, ...] = ()

    def apply(self, record: Dict[str, Any]):
        value = _require(record, self.field)
        suffix = _require(record, self.suffix_field)
        if not isinstance(value, str) or not isinstance(suffix, str) or not suffix:
            return
        if self.only_for and suffix not in self.only_for:
            return
        tail = self.separator + suffix
        if value.endswith(tail) and len(value) > len(tail):
            record[self.field] = value[:-len(tail)]

    def describe(self) -> str:
        scope = f" when {self.suffix_field} in {list(self.only_for)}" if self.only_for else ""
        return f"strip {self.suffix_field} suffix from {self.field}{scope}"


@dataclass(frozen=True)
class CategoryLookup:
    """Map the value of ``field`` through a lookup table."""
    kind: ClassVar[str] = "category_lookup"
    field: str
    table: Tuple[Tuple[str, str], ...]
    default: Optional[str] = None

    @property
    def mapping(self) -> Dict[str, str]:
        return dict(self.table)

    def apply(self, record: Dict[str, Any]):
        value = _require(record, self.field)
        mapping = self.mapping
        try:
            known = value in mapping
        except TypeError:
            raise TransformError(f"Cannot look up unhashable {self.field} value {value!r}")
        if known:
            record[self.field] = mapping[value]
        elif self.default is not None:
            record[self.field] = self.default

    def describe(self) -> str:
        pairs = ", ".join(f"{k} -> {v}" for k, v in self.table)
        return f"map {self.field} ({pairs})"


@dataclass(frozen=True)
class UnitConversion:
    """Multiply a numeric field by a constant factor."""
    kind: ClassVar[str] = "unit_conversion"
    field: str
    factor: float
    ndigits: int = 2

    def apply(self, record: Dict[str, Any]):
        value = _require(record, self.field)
        try:
            record[self.field] = round(float(value) * self.factor, self.ndigits)
        except (TypeError, ValueError) as e:
            raise TransformError(f"Field '{self.field}' is not numeric: {value!r}") from e

    def describe(self) -> str:
        return f"multiply {self.field} by {self.factor:g}"


STEP_TYPES = {cls.kind: cls for cls in
              (RenameField, CopyField, StripSuffix, CategoryLookup, UnitConversion)}

TransformProgram = Tuple[Any, ...]


def apply_program(program: TransformProgram, record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run every step of program on a copy of record.

    Raises:
        TransformError: If a step needs a field the record does not have
    """
    result = dict(record)
    for step in program:
        step.apply(result)
    return result


def describe_program(program: TransformProgram) -> str:
    if not program:
        return "identity"
    return "; ".join(step.describe() for step in program)


def step_to_dict(step) -> Dict[str, Any]:
    data = {'kind': step.kind}
    data.update(asdict(step))
    if isinstance(step, StripSuffix):
        data['only_for'] = list(step.only_for)
    if isinstance(step, CategoryLookup):
        data['table'] = [list(pair) for pair in step.table]
    return data


def program_to_dict(program: TransformProgram) -> List[Dict[str, Any]]:
    """JSON-serializable form of a program."""
    return [step_to_dict(step) for step in program]


def program_from_dict(data: Iterable[Dict[str, Any]]) -> TransformProgram:
    """
    Rebuild a program from program_to_dict() output.

    Raises:
        ValueError: If a step has an unknown kind or unexpected fields
    """
    steps = []
    for entry in data:
        entry = dict(entry)
        kind = entry.pop('kind', None)
        if kind not in STEP_TYPES:
            raise ValueError(f"Unknown transformation step: {kind}. "
                             f"Available steps: {sorted(STEP_TYPES)}")
        cls = STEP_TYPES[kind]
        allowed = {f.name for f in fields(cls)}
        unexpected = set(entry) - allowed
        if unexpected:
            raise ValueError(f"Unexpected fields for {kind}: {sorted(unexpected)}")
        if 'only_for' in entry:
            entry['only_for'] = tuple(entry['only_for'])
        if 'table' in entry:
            entry['table'] = tuple(tuple(pair) for pair in entry['table'])
        try:
            steps.append(cls(**entry))
        except TypeError as e:
            raise ValueError(f"Invalid {kind} step: {e}") from e
    return tuple(steps)
