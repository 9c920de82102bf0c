"""Structural pattern matching against single branches.

Matching is defined per branch: a branch is a non-superposed value together with
its amplitude. Phase patterns inspect (and consume) the amplitude; every other
pattern passes it through unchanged.

A value that matches the pattern's shape but not its constructors is simply not a
match. A value of a different shape (wrong tuple arity, different data type) is a
``PatternMismatch``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ._ast import (
    AltPattern,
    ConstructorPattern,
    LiteralPattern,
    PhasePattern,
    TuplePattern,
    VarPattern,
    WildcardPattern,
)
from ._errors import PatternMismatch
from ._values import Atom, TupleValue, classical, format_value, is_phase_flipped

if TYPE_CHECKING:
    from ._ast import Pattern
    from ._env import Environment
    from ._values import Value


@dataclass(frozen=True, slots=True)
class Match:
    """A successful match.

    Attributes:
        bindings: Values bound to the pattern's variables.
        amplitude: The branch amplitude after the match (negated by a phase pattern).

    """

    bindings: dict[str, Value]
    amplitude: complex


def resolve_constructor(name: str, env: Environment) -> Atom:
    """Look up a constructor name used in a pattern."""
    value = classical(env.lookup(name))
    if not isinstance(value, Atom):
        msg = f"`{name}` is not a data constructor"
        raise PatternMismatch(msg)
    return value


def match_branch(pattern: Pattern, value: Value, amplitude: complex, env: Environment) -> Match | None:
    """Match one branch against a pattern.

    Args:
        pattern: The pattern to match.
        value: The branch value (never a superposition).
        amplitude: The branch amplitude.
        env: Scope used to resolve constructor names.

    Returns:
        The bindings and resulting amplitude, or None if the branch does not match.

    Raises:
        PatternMismatch: If the value's shape cannot fit the pattern at all.

    """
    bindings: dict[str, Value] = {}
    result = _match(pattern, value, amplitude, env, bindings)
    if result is None:
        return None
    return Match(bindings=bindings, amplitude=result)


def _match(  # noqa: C901, PLR0911
    pattern: Pattern,
    value: Value,
    amplitude: complex,
    env: Environment,
    bindings: dict[str, Value],
) -> complex | None:
    match pattern:
        case WildcardPattern():
            return amplitude
        case VarPattern(name=name):
            if name in bindings:
                msg = f"Variable `{name}` is bound twice in one pattern"
                raise PatternMismatch(msg)
            bindings[name] = value
            return amplitude
        case ConstructorPattern(name=name):
            return _match_atom(resolve_constructor(name, env), value, amplitude)
        case LiteralPattern(atom=atom):
            return _match_atom(atom, value, amplitude)
        case TuplePattern(items=items):
            if not isinstance(value, TupleValue) or value.arity != len(items):
                msg = f"Cannot deconstruct {len(items)} values from `{format_value(value)}`"
                raise PatternMismatch(msg)
            current: complex | None = amplitude
            for item, item_value in zip(items, value.items, strict=True):
                current = _match(item, item_value, current, env, bindings)
                if current is None:
                    return None
            return current
        case AltPattern(options=options):
            for option in options:
                trial: dict[str, Value] = dict(bindings)
                result = _match(option, value, amplitude, env, trial)
                if result is not None:
                    bindings.update(trial)
                    return result
            return None
        case PhasePattern(inner=inner):
            if not is_phase_flipped(amplitude):
                return None
            return _match(inner, value, -amplitude, env, bindings)
        case _:
            msg = f"Unknown pattern type: {type(pattern)}"
            raise TypeError(msg)


def _match_atom(atom: Atom, value: Value, amplitude: complex) -> complex | None:
    if not isinstance(value, Atom) or value.datatype.name != atom.datatype.name:
        msg = f"Constructor `{atom.tag}` cannot match `{format_value(value)}`"
        raise PatternMismatch(msg)
    return amplitude if value == atom else None
