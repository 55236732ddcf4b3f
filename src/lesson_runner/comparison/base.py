"""Base comparison classes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lesson_runner.config import ComparisonStrategy
    from lesson_runner.execution.runner import RunOutcome


@dataclass(frozen=True)
class Mismatch:
    """One dimension on which the exercise and the solution disagree."""
    dimension: str  # exit_code, timeout, stdout, filesystem, vcs_log
    subject: str = ""
    detail: str = field(default="", compare=False)

    def describe(self) -> str:
        label = f"{self.dimension} {self.subject}" if self.subject else self.dimension
        return f"{label}: {self.detail}" if self.detail else label


@dataclass(frozen=True)
class Verdict:
    """Result of comparing an exercise outcome to its solution outcome."""
    passed: bool
    strategy: ComparisonStrategy
    mismatches: tuple[Mismatch, ...] = ()

    @property
    def dimensions(self) -> list[str]:
        """Distinct mismatched dimensions, in order of first appearance."""
        return list(dict.fromkeys(m.dimension for m in self.mismatches))


class Comparator(ABC):
    """Abstract base class for comparison strategies.

    ``compare`` applies the checks shared by every strategy (timeouts and
    exit codes) and then the strategy's own dimension. Any mismatch fails
    the verdict.
    """

    @property
    @abstractmethod
    def strategy(self) -> ComparisonStrategy:
        ...

    @abstractmethod
    def compare_dimension(self, exercise: RunOutcome, solution: RunOutcome) -> list[Mismatch]:
        """Compare the strategy-specific dimension of two outcomes."""
        ...

    def compare(self, exercise: RunOutcome, solution: RunOutcome) -> Verdict:
        mismatches: list[Mismatch] = []

        timed_out = [
            role for role, outcome in (("exercise", exercise), ("solution", solution)) if outcome.timed_out
        ]
        if timed_out:
            mismatches.append(Mismatch("timeout", detail=f"{' and '.join(timed_out)} timed out"))
        elif exercise.exit_code != solution.exit_code:
            mismatches.append(Mismatch(
                "exit_code",
                detail=f"exercise exited {exercise.exit_code}, solution exited {solution.exit_code}",
            ))

        mismatches.extend(self.compare_dimension(exercise, solution))
        return Verdict(passed=not mismatches, strategy=self.strategy, mismatches=tuple(mismatches))
