"""Measurement: probabilistic collapse of a superposition to one branch.

Randomness is injected through a ``RandomSource`` so that runs can be replayed.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from itertools import accumulate
from typing import TYPE_CHECKING, Protocol

from funqy._errors import DegenerateStateError
from funqy._values import NullState, Superposition, branches_of, merge, normalize

if TYPE_CHECKING:
    from collections.abc import Sequence

    from funqy._values import Value

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    """Source of uniform draws in ``[0, 1)``."""

    def next(self) -> float: ...


@dataclass(slots=True)
class SeededRandomSource:
    """Pseudo-random draws from a generator seeded once per program run."""

    seed: int | None = None
    _rng: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)  # noqa: S311 - simulation, not cryptography

    def next(self) -> float:
        return self._rng.random()


@dataclass(slots=True)
class FixedSequenceSource:
    """Replays a fixed sequence of draws, cycling when it runs out."""

    values: Sequence[float]
    _position: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if not self.values:
            msg = "FixedSequenceSource needs at least one value"
            raise ValueError(msg)
        for value in self.values:
            if not 0.0 <= value < 1.0:
                msg = f"Random draws must lie in [0, 1), got {value}"
                raise ValueError(msg)

    def next(self) -> float:
        value = self.values[self._position % len(self.values)]
        self._position += 1
        return value


def measure(value: Value, source: RandomSource) -> Value:
    """Collapse ``value`` to one of its branches.

    The value is normalized first; each branch is chosen with probability equal to
    its squared amplitude magnitude. The measured value itself is left untouched.

    Args:
        value: The value to measure.
        source: Supplies the uniform draw.

    Returns:
        The selected branch value (a single branch of unit amplitude).

    Raises:
        DegenerateStateError: If ``value`` has no probability mass.

    """
    if isinstance(value, NullState):
        msg = "Cannot measure the null state"
        raise DegenerateStateError(msg)
    if not isinstance(value, Superposition):
        return value

    branches = branches_of(normalize(merge(value)))
    cumulative = list(accumulate(abs(amplitude) ** 2 for _, amplitude in branches))
    draw = source.next()

    chosen = branches[-1][0]
    for (branch, _), bound in zip(branches, cumulative, strict=True):
        if draw < bound:
            chosen = branch
            break

    logger.debug("Measured %s with draw %.6f -> %s", value, draw, chosen)
    return chosen
