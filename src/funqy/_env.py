"""Immutable lexical environments."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from ._ast import VarPattern, is_structural
from ._errors import PatternMismatch, UnboundIdentifier
from ._matching import match_branch
from ._values import EPSILON, ONE, branches_of, format_value

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from ._ast import Pattern
    from ._values import Value


@dataclass(frozen=True, slots=True, eq=False)
class Environment:
    """One scope in a chain of scopes.

    Each scope holds a read-only mapping of its own bindings and a reference to its
    parent. Scopes are never mutated; ``child`` creates a new scope on top.

    Attributes:
        bindings: The names bound directly in this scope.
        parent: The enclosing scope, or None for the outermost one.

    """

    bindings: Mapping[str, Value] = field(default_factory=lambda: MappingProxyType({}))
    parent: Environment | None = None

    @classmethod
    def empty(cls) -> Environment:
        return cls()

    def child(self, bindings: Mapping[str, Value]) -> Environment:
        """Create a nested scope with the given bindings."""
        return Environment(bindings=MappingProxyType(dict(bindings)), parent=self)

    def lookup(self, name: str) -> Value:
        """Find a name in this scope or the nearest enclosing one.

        Raises:
            UnboundIdentifier: If no scope in the chain binds ``name``.

        """
        scope: Environment | None = self
        while scope is not None:
            if name in scope.bindings:
                return scope.bindings[name]
            scope = scope.parent
        raise UnboundIdentifier(name)

    def __contains__(self, name: object) -> bool:
        return any(name in scope.bindings for scope in self._chain())

    def _chain(self) -> Iterator[Environment]:
        scope: Environment | None = self
        while scope is not None:
            yield scope
            scope = scope.parent

    def flatten(self, *, stop_at: Environment | None = None) -> dict[str, Value]:
        """Collect visible bindings, innermost first wins.

        Args:
            stop_at: Do not include bindings from this scope or its ancestors.

        """
        result: dict[str, Value] = {}
        for scope in self._chain():
            if scope is stop_at:
                break
            for name, value in scope.bindings.items():
                result.setdefault(name, value)
        return result


def bind(pattern: Pattern, value: Value, parent: Environment) -> Environment:
    """Destructure ``value`` against ``pattern`` into a new child scope of ``parent``.

    Variable and wildcard patterns bind the value whole, superposed or not.
    Structural patterns need a definite value: destructuring a superposition is the
    job of ``extract``.

    Raises:
        PatternMismatch: If the pattern's shape does not fit the value.

    """
    if isinstance(pattern, VarPattern):
        return parent.child({pattern.name: value})
    if not is_structural(pattern):
        return parent.child({})

    branches = branches_of(value)
    if len(branches) != 1:
        msg = f"Cannot destructure superposed value `{format_value(value)}`; use extract"
        raise PatternMismatch(msg)

    branch_value, amplitude = branches[0]
    matched = match_branch(pattern, branch_value, amplitude, parent)
    if matched is None:
        msg = f"Pattern does not match value `{format_value(value)}`"
        raise PatternMismatch(msg)
    if abs(matched.amplitude - ONE) > EPSILON:
        msg = f"Binding `{format_value(value)}` would discard its phase"
        raise PatternMismatch(msg)
    return parent.child(matched.bindings)
