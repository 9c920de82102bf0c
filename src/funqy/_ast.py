"""Abstract syntax tree for FunQy programs.

These are pure, immutable data structures produced by the parser and consumed by
the evaluation engine. Nothing here has behavior beyond small structural queries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from ._values import Atom, Value

# Parameter name used when a case table is desugared into a lambda.
TABLE_ARGUMENT: Final = "%arg"


# =============================================================================
# Patterns
# =============================================================================


@dataclass(frozen=True, slots=True)
class WildcardPattern:
    """``_``: matches anything, binds nothing."""


@dataclass(frozen=True, slots=True)
class VarPattern:
    """A lowercase name: binds the matched value."""

    name: str


@dataclass(frozen=True, slots=True)
class ConstructorPattern:
    """A capitalized name: matches the constructor atom it resolves to in scope."""

    name: str


@dataclass(frozen=True, slots=True)
class LiteralPattern:
    """An already-resolved atom."""

    atom: Atom


@dataclass(frozen=True, slots=True)
class TuplePattern:
    items: tuple[Pattern, ...]


@dataclass(frozen=True, slots=True)
class AltPattern:
    """``p | q``: alternatives tried left to right."""

    options: tuple[Pattern, ...]


@dataclass(frozen=True, slots=True)
class PhasePattern:
    """``~p``: matches ``p`` only on branches whose phase is flipped."""

    inner: Pattern


Pattern = (
    WildcardPattern | VarPattern | ConstructorPattern | LiteralPattern | TuplePattern | AltPattern | PhasePattern
)


def is_structural(pattern: Pattern) -> bool:
    """Check whether a pattern inspects the value rather than binding it whole."""
    return not isinstance(pattern, (WildcardPattern, VarPattern))


def pattern_variables(pattern: Pattern) -> list[str]:
    """Variable names bound by a pattern, in left-to-right order (duplicates kept)."""
    match pattern:
        case VarPattern(name=name):
            return [name]
        case TuplePattern(items=items):
            return [name for item in items for name in pattern_variables(item)]
        case AltPattern(options=options):
            return pattern_variables(options[0]) if options else []
        case PhasePattern(inner=inner):
            return pattern_variables(inner)
        case _:
            return []


# =============================================================================
# Expressions
# =============================================================================


@dataclass(frozen=True, slots=True)
class Literal:
    value: Value


@dataclass(frozen=True, slots=True)
class Var:
    name: str


@dataclass(frozen=True, slots=True)
class TupleExpr:
    items: tuple[Expr, ...]


@dataclass(frozen=True, slots=True)
class Lambda:
    param: Pattern
    body: Expr

    @property
    def table_cases(self) -> tuple[Case, ...] | None:
        """The branch table if this lambda is ``fn x => extract x { ... }``."""
        match self.param, self.body:
            case VarPattern(name=name), Extract(scrutinee=Var(name=scrutinee_name), cases=cases) if (
                name == scrutinee_name
            ):
                return cases
            case _:
                return None


@dataclass(frozen=True, slots=True)
class Apply:
    function: Expr
    argument: Expr


@dataclass(frozen=True, slots=True)
class Sup:
    """``sup(e1, e2, ...)``."""

    items: tuple[Expr, ...]


@dataclass(frozen=True, slots=True)
class Scaled:
    """``@[phase] e`` / ``@[phase, magnitude] e``."""

    expr: Expr
    amplitude: complex


@dataclass(frozen=True, slots=True)
class PhaseFlip:
    """``phf(e)``."""

    expr: Expr


@dataclass(frozen=True, slots=True)
class Measure:
    expr: Expr


@dataclass(frozen=True, slots=True)
class Invert:
    """``inv(f)``."""

    expr: Expr


@dataclass(frozen=True, slots=True)
class Cond:
    condition: Expr
    then: Expr
    orelse: Expr


@dataclass(frozen=True, slots=True)
class Case:
    pattern: Pattern
    body: Expr


@dataclass(frozen=True, slots=True)
class Extract:
    scrutinee: Expr
    cases: tuple[Case, ...]


@dataclass(frozen=True, slots=True)
class Block:
    decls: tuple[Decl, ...]
    result: Expr


Expr = (
    Literal
    | Var
    | TupleExpr
    | Lambda
    | Apply
    | Sup
    | Scaled
    | PhaseFlip
    | Measure
    | Invert
    | Cond
    | Extract
    | Block
)


def case_table(cases: tuple[Case, ...]) -> Lambda:
    """Desugar ``fn { p => e, ... }`` into a lambda extracting over its argument."""
    return Lambda(VarPattern(TABLE_ARGUMENT), Extract(Var(TABLE_ARGUMENT), cases))


# =============================================================================
# Declarations
# =============================================================================


@dataclass(frozen=True, slots=True)
class DataDecl:
    """``data Bool = F | T``."""

    name: str
    variants: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class LetDecl:
    pattern: Pattern
    expr: Expr


@dataclass(frozen=True, slots=True)
class FnDecl:
    """A named function; the name is visible inside its own body."""

    name: str
    expr: Expr


@dataclass(frozen=True, slots=True)
class AssertDecl:
    expected: Expr
    actual: Expr


@dataclass(frozen=True, slots=True)
class PrintDecl:
    expr: Expr


@dataclass(frozen=True, slots=True)
class ImportDecl:
    path: str


@dataclass(frozen=True, slots=True)
class ExprDecl:
    """A bare top-level expression; its value becomes the program value."""

    expr: Expr


Decl = DataDecl | LetDecl | FnDecl | AssertDecl | PrintDecl | ImportDecl | ExprDecl


@dataclass(frozen=True, slots=True)
class Program:
    decls: tuple[Decl, ...]
