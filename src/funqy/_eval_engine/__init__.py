"""Evaluation engine module for funqy.

This module reduces parsed expressions to values. Besides the evaluator proper it
holds the three engines the evaluator delegates to:

- extract: per-branch pattern matching and recombination of superpositions
- measure: probabilistic collapse through an injected RandomSource
- invert: structural inversion of branch-table functions

Resource ceilings (depth, steps, branch counts) live in ResourceBudget.
"""

from ._budget import ResourceBudget
from ._engine import AssertionRecord, Evaluator, evaluate
from ._extract import extract
from ._invert import invert, table_cases
from ._measure import FixedSequenceSource, RandomSource, SeededRandomSource, measure

__all__ = [
    "AssertionRecord",
    "Evaluator",
    "FixedSequenceSource",
    "RandomSource",
    "ResourceBudget",
    "SeededRandomSource",
    "evaluate",
    "extract",
    "invert",
    "measure",
    "table_cases",
]
