"""Comparison strategies for exercise vs. solution outcomes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lesson_runner.config import ComparisonStrategy

from .base import Comparator, Mismatch, Verdict
from .filesystem import FilesystemTreeComparator
from .stdout import ExactStdoutComparator, NormalizedStdoutComparator
from .vcs import UnorderedVcsLogShapeComparator, VcsLogShapeComparator

if TYPE_CHECKING:
    from lesson_runner.execution.runner import RunOutcome


def create_comparator(strategy: ComparisonStrategy | str) -> Comparator:
    """Factory function to create a comparator for a strategy tag."""
    mapping: dict[ComparisonStrategy, type[Comparator]] = {
        ComparisonStrategy.EXACT_STDOUT: ExactStdoutComparator,
        ComparisonStrategy.NORMALIZED_STDOUT: NormalizedStdoutComparator,
        ComparisonStrategy.FILESYSTEM_TREE: FilesystemTreeComparator,
        ComparisonStrategy.VCS_LOG_SHAPE: VcsLogShapeComparator,
        ComparisonStrategy.VCS_LOG_SHAPE_UNORDERED: UnorderedVcsLogShapeComparator,
    }
    cls = mapping[ComparisonStrategy(strategy)]
    return cls()


def compare(exercise: RunOutcome, solution: RunOutcome, strategy: ComparisonStrategy | str) -> Verdict:
    """Judge an exercise outcome against its solution outcome."""
    return create_comparator(strategy).compare(exercise, solution)
