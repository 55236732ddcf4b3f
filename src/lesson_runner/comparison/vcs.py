"""Commit history shape comparison strategies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lesson_runner.config import ComparisonStrategy

from .base import Comparator, Mismatch

if TYPE_CHECKING:
    from lesson_runner.execution.runner import RunOutcome


class VcsLogShapeComparator(Comparator):
    """Commit subjects must match as an ordered sequence."""

    ordered = True

    @property
    def strategy(self) -> ComparisonStrategy:
        return ComparisonStrategy.VCS_LOG_SHAPE

    def compare_dimension(self, exercise: RunOutcome, solution: RunOutcome) -> list[Mismatch]:
        ours = exercise.commit_subjects
        theirs = solution.commit_subjects
        if ours is None and theirs is None:
            return []
        if ours is None or theirs is None:
            missing = "exercise" if ours is None else "solution"
            return [Mismatch("vcs_log", detail=f"no repository in {missing} sandbox")]

        if self.ordered:
            if list(ours) == list(theirs):
                return []
            return [Mismatch(
                "vcs_log",
                detail=f"exercise has {len(ours)} commit(s), solution has {len(theirs)}; order or subjects differ",
            )]

        if set(ours) == set(theirs):
            return []
        return [
            Mismatch("vcs_log", subject=subject, detail="only in exercise" if subject in ours else "only in solution")
            for subject in sorted(set(ours) ^ set(theirs))
        ]


class UnorderedVcsLogShapeComparator(VcsLogShapeComparator):
    """Commit subjects must match as a set."""

    ordered = False

    @property
    def strategy(self) -> ComparisonStrategy:
        return ComparisonStrategy.VCS_LOG_SHAPE_UNORDERED
