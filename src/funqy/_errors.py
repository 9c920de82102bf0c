"""Error types raised by the FunQy core.

Every failure of the evaluator is surfaced as a subclass of ``FunqyError``.
Nothing is retried or defaulted inside the core; re-running the same program
reproduces the same error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._values import Value


class FunqyError(Exception):
    """Base class for all evaluation errors."""


class UnboundIdentifier(FunqyError):
    """An identifier was not found in any enclosing scope."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Identifier not found in scope: `{name}`")


class PatternMismatch(FunqyError):
    """A pattern's shape does not match the value it is bound against."""


class NonExhaustiveMatch(FunqyError):
    """No case of an extraction matched one branch of the scrutinee."""

    def __init__(self, value: Value) -> None:
        from ._values import format_value  # noqa: PLC0415

        self.value = value
        super().__init__(f"No pattern matches branch `{format_value(value)}`")


class DegenerateStateError(FunqyError):
    """A superposition with zero total probability mass was normalized or measured."""


class NotInvertible(FunqyError):
    """A function is not a bijective branch table and cannot be inverted."""


class AssertionFailed(FunqyError):
    """An ``assert`` declaration compared two values that are not equal."""

    def __init__(self, expected: Value, actual: Value) -> None:
        from ._values import format_value  # noqa: PLC0415

        self.expected = expected
        self.actual = actual
        super().__init__(f"Assertion failed: {format_value(expected)} != {format_value(actual)}")


class ResourceExhausted(FunqyError):
    """A depth, step or branch-count ceiling was exceeded."""


class InvalidOperation(FunqyError):
    """An operation was applied to a value it is not defined for.

    The parser does not type-check programs, so e.g. applying an atom surfaces here.
    """
