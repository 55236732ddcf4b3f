"""File tree comparison strategy."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lesson_runner.config import ComparisonStrategy

from .base import Comparator, Mismatch

if TYPE_CHECKING:
    from lesson_runner.execution.runner import RunOutcome


class FilesystemTreeComparator(Comparator):
    """Final sandbox trees must hold the same paths with the same contents."""

    @property
    def strategy(self) -> ComparisonStrategy:
        return ComparisonStrategy.FILESYSTEM_TREE

    def compare_dimension(self, exercise: RunOutcome, solution: RunOutcome) -> list[Mismatch]:
        mismatches = []
        for path in sorted(exercise.files.keys() | solution.files.keys()):
            ours = exercise.files.get(path)
            theirs = solution.files.get(path)
            if ours == theirs:
                continue
            if theirs is None:
                detail = "only in exercise"
            elif ours is None:
                detail = "only in solution"
            else:
                detail = "content differs"
            mismatches.append(Mismatch("filesystem", subject=path, detail=detail))
        return mismatches
