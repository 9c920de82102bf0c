"""Structural inversion of branch-table functions.

A function written as a finite table ``{p1 => e1, p2 => e2, ...}`` whose outputs
are constructor expressions is inverted by swapping each side:
``{pattern(e1) => expr(p1), ...}``. The table must be a bijection between its
input and output patterns.
"""

from __future__ import annotations

import logging
from itertools import combinations
from typing import TYPE_CHECKING

from funqy._ast import (
    TABLE_ARGUMENT,
    AltPattern,
    Case,
    ConstructorPattern,
    Extract,
    Lambda,
    Literal,
    LiteralPattern,
    PhaseFlip,
    PhasePattern,
    TupleExpr,
    TuplePattern,
    Var,
    VarPattern,
    WildcardPattern,
    pattern_variables,
)
from funqy._errors import NotInvertible
from funqy._matching import resolve_constructor
from funqy._values import Atom, Closure, TupleValue, classical

if TYPE_CHECKING:
    from funqy._ast import Expr, Pattern
    from funqy._env import Environment
    from funqy._values import Value

logger = logging.getLogger(__name__)


def table_cases(fn: Closure) -> tuple[Case, ...]:
    """The branch table of a closure.

    A closure of the form ``fn x => extract x {...}`` yields its cases; any other
    closure is the one-case table ``{param => body}``.
    """
    cases = Lambda(fn.param, fn.body).table_cases
    if cases is not None:
        return cases
    return (Case(fn.param, fn.body),)


def _pattern_from_value(value: Value) -> Pattern:
    match classical(value):
        case Atom() as atom:
            return LiteralPattern(atom)
        case TupleValue(items=items):
            return TuplePattern(tuple(_pattern_from_value(item) for item in items))
        case _:
            msg = "Only constructor values can be turned back into patterns"
            raise NotInvertible(msg)


def _pattern_from_expr(expr: Expr, variables: set[str], env: Environment) -> Pattern:
    match expr:
        case Var(name=name) if name in variables:
            return VarPattern(name)
        case Var(name=name):
            if not isinstance(classical(env.lookup(name)), Atom):
                msg = f"Output `{name}` is not a constructor"
                raise NotInvertible(msg)
            return ConstructorPattern(name)
        case Literal(value=value):
            return _pattern_from_value(value)
        case TupleExpr(items=items):
            return TuplePattern(tuple(_pattern_from_expr(item, variables, env) for item in items))
        case PhaseFlip(expr=inner):
            return PhasePattern(_pattern_from_expr(inner, variables, env))
        case _:
            msg = f"Cannot invert a branch with a computed output ({type(expr).__name__})"
            raise NotInvertible(msg)


def _expr_from_pattern(pattern: Pattern) -> Expr:
    match pattern:
        case VarPattern(name=name):
            return Var(name)
        case ConstructorPattern(name=name):
            return Var(name)
        case LiteralPattern(atom=atom):
            return Literal(atom)
        case TuplePattern(items=items):
            return TupleExpr(tuple(_expr_from_pattern(item) for item in items))
        case PhasePattern(inner=inner):
            return PhaseFlip(_expr_from_pattern(inner))
        case WildcardPattern() | AltPattern():
            msg = "Cannot invert a branch whose input uses a wildcard or alternation"
            raise NotInvertible(msg)
        case _:
            msg = f"Unknown pattern type: {type(pattern)}"
            raise TypeError(msg)


def _canonical(pattern: Pattern, env: Environment) -> object:
    """Pattern shape with constructors resolved and variables erased."""
    match pattern:
        case VarPattern() | WildcardPattern():
            return None
        case ConstructorPattern(name=name):
            return resolve_constructor(name, env)
        case LiteralPattern(atom=atom):
            return atom
        case TuplePattern(items=items):
            return tuple(_canonical(item, env) for item in items)
        case PhasePattern(inner=inner):
            return ("~", _canonical(inner, env))
        case _:
            msg = f"Unknown pattern type: {type(pattern)}"
            raise TypeError(msg)


def _overlaps(left: object, right: object) -> bool:
    """Check whether two canonical patterns can match a common branch."""
    if left is None or right is None:
        return True
    match left, right:
        case ("~", left_inner), ("~", right_inner):
            return _overlaps(left_inner, right_inner)
        case ("~", _), _:
            return False
        case _, ("~", _):
            return False
        case tuple(), tuple():
            return len(left) == len(right) and all(_overlaps(a, b) for a, b in zip(left, right, strict=True))
        case _:
            return left == right


def invert(fn: Closure) -> Closure:
    """Derive the structural inverse of a branch-table function.

    Args:
        fn: A closure whose body is a finite branch table (or a single structural lambda).

    Returns:
        A closure mapping each output pattern back to its input.

    Raises:
        NotInvertible: If an output is computed rather than a constructor expression,
            an input pattern cannot be turned into an expression, variables are not
            used exactly once, or two outputs overlap (the table is not bijective).

    """
    cases = table_cases(fn)
    inverted: list[Case] = []
    for index, case in enumerate(cases):
        inputs = pattern_variables(case.pattern)
        output_pattern = _pattern_from_expr(case.body, set(inputs), fn.env)
        outputs = pattern_variables(output_pattern)
        if sorted(outputs) != sorted(inputs):
            msg = f"Case {index} does not use each of its variables exactly once in its output"
            raise NotInvertible(msg)
        inverted.append(Case(output_pattern, _expr_from_pattern(case.pattern)))

    canonical = [_canonical(case.pattern, fn.env) for case in inverted]
    for (i, left), (j, right) in combinations(enumerate(canonical), 2):
        if _overlaps(left, right):
            msg = f"Cases {i} and {j} produce overlapping outputs; the function is not a bijection"
            raise NotInvertible(msg)

    logger.debug("Inverted %d-case table %s", len(inverted), fn.name or "<anonymous>")
    return Closure(
        param=VarPattern(TABLE_ARGUMENT),
        body=Extract(Var(TABLE_ARGUMENT), tuple(inverted)),
        env=fn.env,
    )
