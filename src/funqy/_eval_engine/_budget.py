"""Resource ceilings for a single evaluation run."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from funqy._errors import ResourceExhausted

if TYPE_CHECKING:
    from collections.abc import Iterator

# Each nesting level costs a handful of host stack frames; stay well below the
# default recursion limit.
DEFAULT_MAX_DEPTH: Final = 128
DEFAULT_MAX_STEPS: Final = 1_000_000
DEFAULT_MAX_BRANCHES: Final = 1 << 16


@dataclass(slots=True)
class ResourceBudget:
    """Depth, step and branch-count ceilings.

    A budget is owned by one run and counts every expression the evaluator reduces.

    Attributes:
        max_depth: Maximum nesting of expression evaluation.
        max_steps: Maximum number of expressions reduced in total.
        max_branches: Maximum branch count of any superposition built by a tuple,
            ``sup`` or extraction.

    """

    max_depth: int = DEFAULT_MAX_DEPTH
    max_steps: int = DEFAULT_MAX_STEPS
    max_branches: int = DEFAULT_MAX_BRANCHES
    depth: int = field(default=0, init=False)
    steps: int = field(default=0, init=False)

    @contextmanager
    def frame(self) -> Iterator[None]:
        """Account for one expression reduction nested inside the current one."""
        self.steps += 1
        if self.steps > self.max_steps:
            msg = f"Evaluation exceeded {self.max_steps} steps"
            raise ResourceExhausted(msg)
        self.depth += 1
        try:
            if self.depth > self.max_depth:
                msg = f"Evaluation exceeded maximum depth {self.max_depth}"
                raise ResourceExhausted(msg)
            yield
        finally:
            self.depth -= 1

    def check_branches(self, count: int) -> None:
        if count > self.max_branches:
            msg = f"Superposition grew to {count} branches (limit {self.max_branches})"
            raise ResourceExhausted(msg)
