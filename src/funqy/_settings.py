"""Interpreter settings shared by the program runner and the CLI."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from ._eval_engine import ResourceBudget
from ._eval_engine._budget import DEFAULT_MAX_BRANCHES, DEFAULT_MAX_DEPTH, DEFAULT_MAX_STEPS


class InterpreterSettings(BaseModel):
    """Tunable knobs of a run.

    Attributes:
        seed: Seed of the measurement random source (None draws from OS entropy).
        max_depth: Maximum expression nesting depth.
        max_steps: Maximum number of expression reductions.
        max_branches: Maximum branch count of an intermediate superposition.
        precision: Decimals used when printing amplitudes.

    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    seed: int | None = None
    max_depth: Annotated[int, Field(gt=0)] = DEFAULT_MAX_DEPTH
    max_steps: Annotated[int, Field(gt=0)] = DEFAULT_MAX_STEPS
    max_branches: Annotated[int, Field(gt=0)] = DEFAULT_MAX_BRANCHES
    precision: Annotated[int, Field(ge=0, le=15)] = 4

    def budget(self) -> ResourceBudget:
        """Create a fresh resource budget for one run."""
        return ResourceBudget(
            max_depth=self.max_depth,
            max_steps=self.max_steps,
            max_branches=self.max_branches,
        )
