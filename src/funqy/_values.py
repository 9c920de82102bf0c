"""Runtime value model.

Values form a closed sum type of immutable dataclasses:

- ``Atom``: a nullary constructor of a ``data`` declaration
- ``TupleValue``: a fixed-arity composite of non-superposed values
- ``Superposition``: amplitude-weighted branches over non-superposed values
- ``Closure``: a function value with its captured environment
- ``NULL_STATE``: the empty state left behind when every branch cancels

Amplitudes are Python ``complex`` numbers; magnitude and phase are read with
``abs`` and ``cmath.phase``.
"""

from __future__ import annotations

import cmath
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from ._errors import DegenerateStateError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from ._ast import Expr, Pattern
    from ._env import Environment

# Amplitudes (and merged amplitude sums) below this magnitude are treated as zero.
EPSILON: Final = 1e-9

ONE: Final = complex(1.0, 0.0)


@dataclass(frozen=True, slots=True)
class DataType:
    """A ``data`` declaration: a named, ordered set of constructor tags."""

    name: str
    variants: tuple[str, ...]

    def atom(self, tag: str) -> Atom:
        if tag not in self.variants:
            msg = f"`{tag}` is not a variant of data type `{self.name}`"
            raise ValueError(msg)
        return Atom(tag=tag, datatype=self)

    def atoms(self) -> tuple[Atom, ...]:
        return tuple(Atom(tag=tag, datatype=self) for tag in self.variants)


@dataclass(frozen=True, slots=True)
class Atom:
    tag: str
    datatype: DataType

    @property
    def index(self) -> int:
        """Position of this constructor within its data type (0 is the false-like variant)."""
        return self.datatype.variants.index(self.tag)

    def __str__(self) -> str:
        return self.tag


@dataclass(frozen=True, slots=True)
class TupleValue:
    items: tuple[Value, ...]

    @property
    def arity(self) -> int:
        return len(self.items)

    def __str__(self) -> str:
        return format_value(self)


UNIT: Final = TupleValue(())


@dataclass(frozen=True, slots=True, eq=False)
class Closure:
    """A first-class function.

    Closures compare by identity. ``name`` is set for functions introduced by an
    ``fn`` declaration so that the body can refer to itself recursively.
    """

    param: Pattern
    body: Expr
    env: Environment
    name: str | None = None

    def __str__(self) -> str:
        return format_value(self)


@dataclass(frozen=True, slots=True, eq=False)
class Superposition:
    """An ordered, weighted multiset of mutually exclusive branch values.

    Equality is semantic: two values are equal when their merged, normalized branch
    sets agree irrespective of branch order (see ``values_equal``).
    """

    branches: tuple[tuple[Value, complex], ...]

    def __post_init__(self) -> None:
        if not self.branches:
            msg = "A superposition needs at least one branch; use NULL_STATE for the empty state"
            raise ValueError(msg)
        for value, _ in self.branches:
            if isinstance(value, (Superposition, NullState)):
                msg = "Superposition branches must not be superpositions themselves"
                raise TypeError(msg)

    def __len__(self) -> int:
        return len(self.branches)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (Atom, TupleValue, Closure, Superposition, NullState)):
            return NotImplemented
        return values_equal(self, other)

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return format_value(self)


class NullState:
    """The empty state: every branch was cancelled by interference."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NULL_STATE"


NULL_STATE: Final = NullState()

Value = Atom | TupleValue | Superposition | Closure | NullState


# =============================================================================
# Amplitudes
# =============================================================================


def from_polar(phase: float, magnitude: float = 1.0) -> complex:
    """Build an amplitude from a phase (radians) and a magnitude."""
    return cmath.rect(magnitude, phase)


def is_phase_flipped(amplitude: complex) -> bool:
    """Check whether an amplitude lies in the flipped half plane (``cos(phase) < 0``)."""
    return amplitude.real < -EPSILON


def format_amplitude(amplitude: complex, precision: int = 4) -> str:
    """Render an amplitude rounded to ``precision`` decimals, e.g. ``0.7071`` or ``0.5-0.5i``."""
    real = _fixed(amplitude.real, precision)
    imag = _fixed(amplitude.imag, precision)
    if imag == "0":
        return real
    if real == "0":
        return f"{imag}i"
    if imag.startswith("-"):
        return f"{real}{imag}i"
    return f"{real}+{imag}i"


def _fixed(number: float, precision: int) -> str:
    text = f"{number:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


# =============================================================================
# Branch views
# =============================================================================


def branches_of(value: Value) -> tuple[tuple[Value, complex], ...]:
    """Flatten a value into its branch list.

    A non-superposed value is a single branch of amplitude 1; the null state has
    no branches.
    """
    match value:
        case Superposition(branches=branches):
            return branches
        case NullState():
            return ()
        case _:
            return ((value, ONE),)


def superpose(branches: Iterable[tuple[Value, complex]]) -> Superposition | NullState:
    """Build a superposition from raw branches without merging or normalizing."""
    collected = tuple(branches)
    if not collected:
        return NULL_STATE
    return Superposition(collected)


def is_superposed(value: Value) -> bool:
    return isinstance(value, Superposition)


def classical(value: Value) -> Value | None:
    """Return the basis value of a definite value, or None if it is genuinely superposed.

    A superposition with a single branch of amplitude 1 is definite. A single branch
    with any other amplitude (e.g. a flipped phase) is not.
    """
    match value:
        case NullState():
            return None
        case Superposition(branches=((branch_value, amplitude),)):
            return branch_value if abs(amplitude - ONE) <= EPSILON else None
        case Superposition():
            return None
        case _:
            return value


def shape_of(value: Value) -> object:
    """Structural shape of a non-superposed value: data type name or tuple of shapes."""
    match value:
        case Atom(datatype=datatype):
            return datatype.name
        case TupleValue(items=items):
            return tuple(shape_of(item) for item in items)
        case Closure():
            return "fn"
        case Superposition(branches=branches):
            return shape_of(branches[0][0])
        case _:
            return None


# =============================================================================
# Algebra
# =============================================================================


def scale(value: Value, factor: complex) -> Value:
    """Multiply every branch amplitude by ``factor``."""
    if isinstance(value, NullState):
        return value
    return Superposition(tuple((branch, amplitude * factor) for branch, amplitude in branches_of(value)))


def phase_flip(value: Value) -> Value:
    """Negate the phase of every branch (add pi) without changing magnitudes."""
    return scale(value, -ONE)


def tensor(left: Value, right: Value) -> Value:
    """Cartesian-combine two values into pairs, multiplying amplitudes."""
    return tensor_all((left, right))


def tensor_all(values: Sequence[Value]) -> Value:
    """Combine component values into tuples.

    If no component is superposed the result is a plain ``TupleValue``; otherwise it
    is the superposition over every combination of component branches.
    """
    if not any(isinstance(value, (Superposition, NullState)) for value in values):
        return TupleValue(tuple(values))

    combined: list[tuple[tuple[Value, ...], complex]] = [((), ONE)]
    for value in values:
        combined = [
            ((*items, branch), amplitude * weight)
            for items, amplitude in combined
            for branch, weight in branches_of(value)
        ]
    return superpose((TupleValue(items), amplitude) for items, amplitude in combined)


def merge(value: Value) -> Value:
    """Coalesce structurally identical branches by summing their amplitudes.

    Branches whose summed magnitude falls below ``EPSILON`` cancel out. If every
    branch cancels the result is ``NULL_STATE``.
    """
    if not isinstance(value, Superposition):
        return value

    totals: dict[Value, complex] = {}
    for branch, amplitude in value.branches:
        totals[branch] = totals.get(branch, 0j) + amplitude

    return superpose((branch, amplitude) for branch, amplitude in totals.items() if abs(amplitude) > EPSILON)


def total_mass(value: Value) -> float:
    """Sum of squared amplitude magnitudes."""
    return math.fsum(abs(amplitude) ** 2 for _, amplitude in branches_of(value))


def normalize(value: Value) -> Value:
    """Rescale amplitudes so that squared magnitudes sum to 1.

    Raises:
        DegenerateStateError: If the total squared magnitude is zero.

    """
    if isinstance(value, NullState):
        msg = "Cannot normalize the null state"
        raise DegenerateStateError(msg)
    if not isinstance(value, Superposition):
        return value

    mass = total_mass(value)
    if mass == 0.0:
        msg = "Cannot normalize a superposition with zero probability mass"
        raise DegenerateStateError(msg)
    factor = 1.0 / math.sqrt(mass)
    return Superposition(tuple((branch, amplitude * factor) for branch, amplitude in value.branches))


def probabilities(value: Value) -> list[tuple[Value, float]]:
    """Branch probabilities of the normalized, merged value."""
    normalized = normalize(merge(value))
    return [(branch, abs(amplitude) ** 2) for branch, amplitude in branches_of(normalized)]


def values_equal(left: Value, right: Value) -> bool:
    """Semantic equality: merged, normalized branch sets agree irrespective of order."""
    left_branches = branches_of(merge(left))
    right_branches = branches_of(merge(right))
    if not left_branches or not right_branches:
        return not left_branches and not right_branches

    left_map = dict(branches_of(normalize(superpose(left_branches))))
    right_map = dict(branches_of(normalize(superpose(right_branches))))
    if left_map.keys() != right_map.keys():
        return False
    return all(abs(amplitude - right_map[branch]) <= EPSILON for branch, amplitude in left_map.items())


# =============================================================================
# Display
# =============================================================================


def format_value(value: Value, precision: int = 4) -> str:
    """Render a value the way ``print`` shows it."""
    match value:
        case Atom(tag=tag):
            return tag
        case TupleValue(items=items):
            return "(" + ", ".join(format_value(item, precision) for item in items) + ")"
        case Closure(name=name):
            return f"<fn {name}>" if name else "<fn>"
        case Superposition(branches=((branch, amplitude),)) if abs(amplitude - ONE) <= EPSILON:
            return format_value(branch, precision)
        case Superposition(branches=branches):
            inner = ", ".join(
                f"{format_value(branch, precision)}: {format_amplitude(amplitude, precision)}"
                for branch, amplitude in branches
            )
            return "{" + inner + "}"
        case NullState():
            return "{}"
        case _:
            msg = f"Unknown value type: {type(value)}"
            raise TypeError(msg)
