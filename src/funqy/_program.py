"""Running whole programs: declarations evaluated in order over one scope chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ._ast import ExprDecl
from ._env import Environment
from ._errors import ResourceExhausted
from ._eval_engine import Evaluator, SeededRandomSource
from ._parser import parse_program
from ._settings import InterpreterSettings

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from ._ast import Program
    from ._eval_engine import AssertionRecord, RandomSource
    from ._values import Value

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgramResult:
    """Result of running a program.

    Attributes:
        printed: Formatted values of ``print`` declarations, in execution order.
        assertions: Outcome of every ``assert`` declaration that ran.
        value: Value of the last bare expression, or None if there was none.
        env: The scope after the last declaration (used by the REPL and imports).

    """

    printed: tuple[str, ...]
    assertions: tuple[AssertionRecord, ...]
    value: Value | None
    env: Environment

    @property
    def success(self) -> bool:
        """Check if every assertion passed."""
        return all(record.passed for record in self.assertions)


def run_program(  # noqa: PLR0913
    program: Program,
    env: Environment | None = None,
    *,
    settings: InterpreterSettings | None = None,
    random_source: RandomSource | None = None,
    importer: Callable[[str], Mapping[str, Value]] | None = None,
    on_print: Callable[[str], None] | None = None,
    fail_fast: bool = True,
) -> ProgramResult:
    """Evaluate every declaration of ``program``.

    Args:
        program: The parsed program.
        env: Scope to start from (e.g. a REPL session). Defaults to the empty scope.
        settings: Resource ceilings, seed and print precision.
        random_source: Source of measurement draws. Defaults to a generator seeded
            with ``settings.seed``, created once for the whole run.
        importer: Resolves ``import "path"`` declarations to bindings.
        on_print: Called with each printed line as soon as it is produced.
        fail_fast: Raise on the first failing ``assert`` instead of recording it.

    Returns:
        ProgramResult with the printed output, assertion outcomes and final value.

    Raises:
        FunqyError: Any evaluation error; the host stack running out surfaces as
            ResourceExhausted.

    """
    if settings is None:
        settings = InterpreterSettings()
    evaluator = Evaluator(
        random_source=random_source if random_source is not None else SeededRandomSource(settings.seed),
        budget=settings.budget(),
        importer=importer,
        on_print=on_print,
        fail_fast=fail_fast,
        precision=settings.precision,
    )

    scope = env if env is not None else Environment.empty()
    value: Value | None = None

    logger.debug("Running program with %d declarations", len(program.decls))
    try:
        for decl in program.decls:
            if isinstance(decl, ExprDecl):
                value = evaluator.evaluate(decl.expr, scope)
            else:
                scope = evaluator.execute(decl, scope)
    except RecursionError as e:
        msg = "Host stack exhausted during evaluation"
        raise ResourceExhausted(msg) from e

    return ProgramResult(
        printed=tuple(evaluator.printed),
        assertions=tuple(evaluator.assertions),
        value=value,
        env=scope,
    )


def run_source(source: str, env: Environment | None = None, **kwargs: object) -> ProgramResult:
    """Parse and run program text. Keyword arguments are passed to ``run_program``."""
    return run_program(parse_program(source), env, **kwargs)  # type: ignore[arg-type]
