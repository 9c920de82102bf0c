"""Interpreter for FunQy, a functional language with superposition extraction."""

__all__ = [
    "NULL_STATE",
    "UNIT",
    "AssertionFailed",
    "AssertionRecord",
    "Atom",
    "Closure",
    "DataType",
    "DegenerateStateError",
    "Environment",
    "Evaluator",
    "FixedSequenceSource",
    "FunqyError",
    "InterpreterSettings",
    "InvalidOperation",
    "NonExhaustiveMatch",
    "NotInvertible",
    "NullState",
    "ParseError",
    "PatternMismatch",
    "ProgramResult",
    "RandomSource",
    "ResourceBudget",
    "ResourceExhausted",
    "ScriptImporter",
    "ScriptNotFoundError",
    "SeededRandomSource",
    "Superposition",
    "TupleValue",
    "UnboundIdentifier",
    "Value",
    "bind",
    "classical",
    "evaluate",
    "export_results_to_toml",
    "extract",
    "format_value",
    "invert",
    "load_script",
    "measure",
    "merge",
    "normalize",
    "parse_program",
    "run_program",
    "run_source",
    "superpose",
    "tensor",
    "values_equal",
]

from ._env import Environment, bind
from ._errors import (
    AssertionFailed,
    DegenerateStateError,
    FunqyError,
    InvalidOperation,
    NonExhaustiveMatch,
    NotInvertible,
    PatternMismatch,
    ResourceExhausted,
    UnboundIdentifier,
)
from ._eval_engine import (
    AssertionRecord,
    Evaluator,
    FixedSequenceSource,
    RandomSource,
    ResourceBudget,
    SeededRandomSource,
    evaluate,
    extract,
    invert,
    measure,
)
from ._io import ScriptImporter, ScriptNotFoundError, export_results_to_toml, load_script
from ._parser import ParseError, parse_program
from ._program import ProgramResult, run_program, run_source
from ._settings import InterpreterSettings
from ._values import (
    NULL_STATE,
    UNIT,
    Atom,
    Closure,
    DataType,
    NullState,
    Superposition,
    TupleValue,
    Value,
    classical,
    format_value,
    merge,
    normalize,
    superpose,
    tensor,
    values_equal,
)
