"""Exercise spec and grading result data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from lesson_runner.config import ComparisonStrategy

if TYPE_CHECKING:
    from lesson_runner.comparison.base import Verdict


@dataclass(frozen=True)
class ExerciseSpec:
    """One gradable lesson unit: an exercise script and its reference solution."""
    id: str
    exercise_path: Path
    solution_path: Path
    strategy: ComparisonStrategy = ComparisonStrategy.EXACT_STDOUT
    timeout_seconds: float = 30.0
    vcs: bool = False
    repo_path: str = "."  # relative to the sandbox root
    interpreter: str = "bash"
    env: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))


@dataclass
class GradeResult:
    """Result of grading a single exercise."""
    exercise_id: str
    strategy: ComparisonStrategy
    verdict: Verdict | None = None
    error: str = ""
    error_kind: str = ""  # sandbox, runner, internal, cancelled
    wall_clock_seconds: float = 0.0

    @property
    def errored(self) -> bool:
        return self.verdict is None
