"""Transformation hypotheses: interpreted primitives and example-driven synthesis."""

from .transforms import (
    CategoryLookup,
    CopyField,
    RenameField,
    StripSuffix,
    TransformError,
    UnitConversion,
    apply_program,
    describe_program,
    program_from_dict,
    program_to_dict,
)
from .synthesizer import PASSTHROUGH, apply_to_corpus, score, synthesize

__all__ = [
    "CategoryLookup",
    "CopyField",
    "RenameField",
    "StripSuffix",
    "TransformError",
    "UnitConversion",
    "apply_program",
    "describe_program",
    "program_from_dict",
    "program_to_dict",
    "PASSTHROUGH",
    "apply_to_corpus",
    "score",
    "synthesize",
]
