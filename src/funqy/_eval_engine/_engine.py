"""Core tree-walking evaluator."""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from funqy._ast import (
    Apply,
    AssertDecl,
    Block,
    Case,
    Cond,
    DataDecl,
    ExprDecl,
    Extract,
    FnDecl,
    ImportDecl,
    Invert,
    Lambda,
    LetDecl,
    Literal,
    LiteralPattern,
    Measure,
    PhaseFlip,
    PrintDecl,
    Scaled,
    Sup,
    TupleExpr,
    Var,
    WildcardPattern,
    is_structural,
)
from funqy._env import Environment, bind
from funqy._errors import AssertionFailed, InvalidOperation, NonExhaustiveMatch, ResourceExhausted
from funqy._matching import match_branch
from funqy._values import (
    ONE,
    Atom,
    Closure,
    DataType,
    branches_of,
    classical,
    format_value,
    merge,
    normalize,
    phase_flip,
    scale,
    superpose,
    tensor_all,
    values_equal,
)

from ._budget import ResourceBudget
from ._extract import extract
from ._invert import invert
from ._measure import SeededRandomSource, measure

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from funqy._ast import Decl, Expr
    from funqy._values import Value

    from ._measure import RandomSource

    Importer = Callable[[str], Mapping[str, Value]]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssertionRecord:
    """Outcome of one ``assert`` declaration, with both sides already formatted."""

    expected: str
    actual: str
    passed: bool


class Evaluator:
    """Reduces expressions to values and executes declarations.

    An evaluator owns everything that is specific to one run: the random source used
    by ``measure``, the resource budget, the optional script importer, and the
    ``print``/``assert`` output collected so far. Values and environments it
    produces are immutable and may outlive it.
    """

    def __init__(
        self,
        *,
        random_source: RandomSource | None = None,
        budget: ResourceBudget | None = None,
        importer: Importer | None = None,
        on_print: Callable[[str], None] | None = None,
        fail_fast: bool = True,
        precision: int = 4,
    ) -> None:
        self.random_source: RandomSource = random_source if random_source is not None else SeededRandomSource()
        self.budget = budget if budget is not None else ResourceBudget()
        self.importer = importer
        self.on_print = on_print
        self.fail_fast = fail_fast
        self.precision = precision
        self.printed: list[str] = []
        self.assertions: list[AssertionRecord] = []

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def evaluate(self, expr: Expr, env: Environment) -> Value:
        """Reduce ``expr`` in ``env`` to a value."""
        with self.budget.frame():
            return self._reduce(expr, env)

    def _reduce(self, expr: Expr, env: Environment) -> Value:  # noqa: C901, PLR0911
        match expr:
            case Literal(value=value):
                return value
            case Var(name=name):
                return env.lookup(name)
            case TupleExpr(items=items):
                components = [self.evaluate(item, env) for item in items]
                self.budget.check_branches(math.prod(len(branches_of(component)) for component in components))
                return tensor_all(components)
            case Lambda(param=param, body=body):
                return Closure(param=param, body=body, env=env)
            case Apply(function=function, argument=argument):
                return self.apply(self.evaluate(function, env), self.evaluate(argument, env))
            case Sup(items=items):
                return self._superpose(items, env)
            case Scaled(expr=inner, amplitude=amplitude):
                return scale(self.evaluate(inner, env), amplitude)
            case PhaseFlip(expr=inner):
                return phase_flip(self.evaluate(inner, env))
            case Measure(expr=inner):
                return measure(self.evaluate(inner, env), self.random_source)
            case Invert(expr=inner):
                return invert(self._closure(self.evaluate(inner, env)))
            case Cond(condition=condition, then=then, orelse=orelse):
                return self._conditional(condition, then, orelse, env)
            case Extract(scrutinee=scrutinee, cases=cases):
                return extract(self.evaluate(scrutinee, env), cases, env, self)
            case Block(decls=decls, result=result):
                scope = env
                for decl in decls:
                    scope = self.execute(decl, scope)
                return self.evaluate(result, scope)
            case _:
                msg = f"Unknown expression type: {type(expr)}"
                raise TypeError(msg)

    def _superpose(self, items: tuple[Expr, ...], env: Environment) -> Value:
        if not items:
            msg = "sup() needs at least one argument"
            raise InvalidOperation(msg)
        branches = [branch for item in items for branch in branches_of(self.evaluate(item, env))]
        self.budget.check_branches(len(branches))
        return normalize(merge(superpose(branches)))

    def _closure(self, value: Value) -> Closure:
        function = classical(value)
        if not isinstance(function, Closure):
            msg = f"Cannot invoke `{format_value(value)}`: not a function"
            raise InvalidOperation(msg)
        return function

    def apply(self, function: Value, argument: Value) -> Value:
        """Apply a function value to an argument value.

        Branch-table functions extract over their argument. A function with a
        structural parameter pattern applied to a superposed argument is treated as
        the one-case table ``{param => body}``, and a definite argument that fits the
        parameter's shape without matching it is a non-exhaustive match either way.
        A variable parameter binds the argument whole.
        """
        closure = self._closure(function)
        scope = closure.env.child({closure.name: closure}) if closure.name else closure.env

        if not is_structural(closure.param):
            return self.evaluate(closure.body, bind(closure.param, argument, scope))

        definite = classical(argument)
        if definite is None:
            return extract(argument, (Case(closure.param, closure.body),), scope, self)
        matched = match_branch(closure.param, definite, ONE, scope)
        if matched is None:
            raise NonExhaustiveMatch(definite)
        return self.evaluate(closure.body, scope.child(matched.bindings))

    def _conditional(self, condition: Expr, then: Expr, orelse: Expr, env: Environment) -> Value:
        value = self.evaluate(condition, env)
        definite = classical(value)
        if definite is not None:
            if not isinstance(definite, Atom):
                msg = f"Condition must be a constructor, got `{format_value(value)}`"
                raise InvalidOperation(msg)
            return self.evaluate(then if definite.index else orelse, env)

        # A superposed condition runs both arms per branch: `extract c { <false> => orelse, _ => then }`
        branches = branches_of(value)
        cases: tuple[Case, ...] = (Case(WildcardPattern(), then),)
        if branches:
            first = branches[0][0]
            if not isinstance(first, Atom):
                msg = f"Condition must be a constructor, got `{format_value(value)}`"
                raise InvalidOperation(msg)
            false_atom = first.datatype.atoms()[0]
            cases = (Case(LiteralPattern(false_atom), orelse), *cases)
        return extract(value, cases, env, self)

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def execute(self, decl: Decl, env: Environment) -> Environment:  # noqa: C901
        """Execute one declaration and return the scope it produces."""
        match decl:
            case DataDecl(name=name, variants=variants):
                if len(set(variants)) != len(variants):
                    msg = f"Data type `{name}` declares a variant twice"
                    raise InvalidOperation(msg)
                datatype = DataType(name=name, variants=variants)
                return env.child({atom.tag: atom for atom in datatype.atoms()})
            case LetDecl(pattern=pattern, expr=expr):
                return bind(pattern, self.evaluate(expr, env), env)
            case FnDecl(name=name, expr=expr):
                value = self.evaluate(expr, env)
                if isinstance(value, Closure):
                    value = dataclasses.replace(value, name=name)
                return env.child({name: value})
            case AssertDecl(expected=expected_expr, actual=actual_expr):
                expected = self.evaluate(expected_expr, env)
                actual = self.evaluate(actual_expr, env)
                passed = values_equal(expected, actual)
                self.assertions.append(
                    AssertionRecord(
                        expected=format_value(expected, self.precision),
                        actual=format_value(actual, self.precision),
                        passed=passed,
                    ),
                )
                logger.debug("Assertion %s: %s == %s", "passed" if passed else "failed", expected, actual)
                if not passed and self.fail_fast:
                    raise AssertionFailed(expected, actual)
                return env
            case PrintDecl(expr=expr):
                text = format_value(self.evaluate(expr, env), self.precision)
                self.printed.append(text)
                if self.on_print is not None:
                    self.on_print(text)
                return env
            case ImportDecl(path=path):
                if self.importer is None:
                    msg = f"Cannot import `{path}`: no script importer is configured"
                    raise InvalidOperation(msg)
                return env.child(self.importer(path))
            case ExprDecl(expr=expr):
                self.evaluate(expr, env)
                return env
            case _:
                msg = f"Unknown declaration type: {type(decl)}"
                raise TypeError(msg)


def evaluate(
    expr: Expr,
    env: Environment | None = None,
    *,
    random_source: RandomSource | None = None,
    budget: ResourceBudget | None = None,
) -> Value:
    """Evaluate a single expression.

    Args:
        expr: The expression to evaluate.
        env: Scope to evaluate in. Defaults to the empty environment.
        random_source: Source of draws for ``measure``.
        budget: Resource ceilings. Defaults to ``ResourceBudget()``.

    Returns:
        The resulting value.

    Raises:
        FunqyError: Any of the evaluation error kinds.

    """
    evaluator = Evaluator(random_source=random_source, budget=budget)
    try:
        return evaluator.evaluate(expr, env if env is not None else Environment.empty())
    except RecursionError as e:
        msg = "Host stack exhausted during evaluation"
        raise ResourceExhausted(msg) from e
