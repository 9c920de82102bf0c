"""Superposition extraction.

``extract`` generalizes a case expression to superposed scrutinees: every branch
of the scrutinee is matched and evaluated on its own, and the per-branch outputs
are recombined into one superposition.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from funqy._errors import DegenerateStateError, NonExhaustiveMatch, PatternMismatch
from funqy._matching import match_branch
from funqy._values import branches_of, merge, normalize, shape_of, superpose

if TYPE_CHECKING:
    from collections.abc import Sequence

    from funqy._ast import Case, Expr
    from funqy._env import Environment
    from funqy._matching import Match
    from funqy._values import Value

    from ._budget import ResourceBudget

logger = logging.getLogger(__name__)


class CaseEvaluator(Protocol):
    """What the extraction engine needs from the evaluator."""

    @property
    def budget(self) -> ResourceBudget: ...

    def evaluate(self, expr: Expr, env: Environment) -> Value: ...


def _check_common_shape(branches: Sequence[tuple[Value, complex]]) -> None:
    shapes = {repr(shape_of(value)) for value, _ in branches}
    if len(shapes) > 1:
        msg = f"Scrutinee branches have inconsistent shapes: {', '.join(sorted(shapes))}"
        raise PatternMismatch(msg)


def _first_match(
    cases: Sequence[Case],
    value: Value,
    amplitude: complex,
    env: Environment,
) -> tuple[Case, Match] | None:
    for case in cases:
        matched = match_branch(case.pattern, value, amplitude, env)
        if matched is not None:
            return case, matched
    return None


def extract(
    scrutinee: Value,
    cases: Sequence[Case],
    env: Environment,
    evaluator: CaseEvaluator,
) -> Value:
    """Match, evaluate and recombine every branch of ``scrutinee``.

    For each scrutinee branch ``(v, a)`` the first case whose pattern matches ``v``
    is evaluated with the pattern's bindings, and every amplitude of its output is
    multiplied by ``a``. The combined branch list is merged (interfering branches
    sum, cancelled branches drop) and normalized.

    Args:
        scrutinee: The value to destructure, superposed or not.
        cases: Ordered (pattern, body) pairs; the first match wins.
        env: Scope the case bodies are evaluated in.
        evaluator: Evaluates case bodies and owns the resource budget.

    Returns:
        A superposition (possibly with a single branch).

    Raises:
        NonExhaustiveMatch: If some scrutinee branch matches no case.
        PatternMismatch: If the scrutinee branches differ in shape.
        DegenerateStateError: If the scrutinee is the null state or every output cancels.
        ResourceExhausted: If the combined branch count exceeds the budget.

    """
    scrutinee_branches = branches_of(scrutinee)
    if not scrutinee_branches:
        msg = "Cannot extract from the null state"
        raise DegenerateStateError(msg)
    _check_common_shape(scrutinee_branches)

    combined: list[tuple[Value, complex]] = []
    for value, amplitude in scrutinee_branches:
        found = _first_match(cases, value, amplitude, env)
        if found is None:
            raise NonExhaustiveMatch(value)
        case, matched = found

        output = evaluator.evaluate(case.body, env.child(matched.bindings))
        combined.extend((branch, matched.amplitude * weight) for branch, weight in branches_of(output))
        evaluator.budget.check_branches(len(combined))

    result = normalize(merge(superpose(combined)))
    logger.debug(
        "Extracted %d scrutinee branches into %d output branches: %s",
        len(scrutinee_branches),
        len(branches_of(result)),
        result,
    )
    return result
