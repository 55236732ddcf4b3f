"""Configuration data models for the lesson grader."""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field

TMPROOT_ENV = "RUNNER_TMPROOT"
GIT_AUTHOR_ENV = "RUNNER_GIT_AUTHOR"

_AUTHOR_PATTERN = re.compile(r"^\s*(?P<name>[^<]+?)\s*(?:<(?P<email>[^>]+)>)?\s*$")


class ComparisonStrategy(str, Enum):
    EXACT_STDOUT = "exact-stdout"
    NORMALIZED_STDOUT = "normalized-stdout"
    FILESYSTEM_TREE = "filesystem-tree"
    VCS_LOG_SHAPE = "vcs-log-shape"
    VCS_LOG_SHAPE_UNORDERED = "vcs-log-shape-unordered"


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


def _default_parallel() -> int:
    return os.cpu_count() or 1


class GraderConfig(BaseModel):
    """Configuration for a grading run."""
    tmp_root: str | None = None  # None -> <system tmp>/lesson-runner
    git_author_name: str = "Lesson Runner"
    git_author_email: str = "runner@example.com"
    parallel: int = Field(default_factory=_default_parallel, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)
    default_strategy: ComparisonStrategy = ComparisonStrategy.EXACT_STDOUT
    interpreter: str = "bash"
    env_allowlist: list[str] = Field(default_factory=lambda: ["PATH", "LANG", "LC_ALL", "TERM"])
    output_format: OutputFormat = OutputFormat.TEXT

    def apply_env(self, environ: Mapping[str, str] | None = None) -> GraderConfig:
        """Return a copy with RUNNER_* environment overrides applied."""
        environ = os.environ if environ is None else environ
        updates: dict[str, Any] = {}

        tmp_root = environ.get(TMPROOT_ENV, "").strip()
        if tmp_root:
            updates["tmp_root"] = tmp_root

        author = environ.get(GIT_AUTHOR_ENV, "").strip()
        if author:
            name, email = parse_git_author(author, default_email=self.git_author_email)
            updates["git_author_name"] = name
            updates["git_author_email"] = email

        return self.model_copy(update=updates)


class LessonMetadata(BaseModel):
    """Optional per-lesson ``grader.yaml`` contents."""
    model_config = ConfigDict(extra="forbid")

    exercise: str = "exercise.sh"
    solution: str = "solution.sh"
    strategy: ComparisonStrategy | None = None
    timeout: float | None = Field(default=None, gt=0)
    vcs: bool = False
    repo_path: str = "."
    interpreter: str | None = None
    env: dict[str, str] = Field(default_factory=dict)


def parse_git_author(value: str, default_email: str) -> tuple[str, str]:
    """Split ``"Name <email>"`` (email optional) into its parts."""
    match = _AUTHOR_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid git author: {value!r}")
    return match.group("name"), match.group("email") or default_email


def load_config(path: str | Path) -> GraderConfig:
    """Load grader config from YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return GraderConfig(**data)
