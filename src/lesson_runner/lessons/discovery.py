"""Lesson tree scanner."""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

import yaml
from pydantic import ValidationError

from lesson_runner.config import ComparisonStrategy, GraderConfig, LessonMetadata
from lesson_runner.errors import LessonError

from .base import ExerciseSpec

logger = logging.getLogger(__name__)

METADATA_FILENAME = "grader.yaml"


def discover_exercises(root: str | Path, config: GraderConfig | None = None) -> list[ExerciseSpec]:
    """Scan a lesson tree for exercise/solution pairs.

    A directory is a lesson when it holds a ``grader.yaml`` file or both
    default scripts (``exercise.sh`` and ``solution.sh``). Directories with
    only an exercise script are skipped.

    Args:
        root: Root of the lesson tree.
        config: Supplies defaults for strategy, timeout and interpreter.

    Returns:
        Specs sorted by id (the lesson directory relative to ``root``).
    """
    config = config or GraderConfig()
    root = Path(root)
    if not root.is_dir():
        raise LessonError(f"Lessons root does not exist: {root}")

    specs: list[ExerciseSpec] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        lesson_dir = Path(dirpath)
        names = set(filenames)

        if METADATA_FILENAME in names:
            metadata = _load_metadata(lesson_dir / METADATA_FILENAME)
        elif {"exercise.sh", "solution.sh"} <= names:
            metadata = LessonMetadata()
        else:
            continue

        specs.append(_spec_from_metadata(root, lesson_dir, metadata, config))

    specs.sort(key=lambda spec: spec.id)
    logger.info("Discovered %d exercise(s) under %s", len(specs), root)
    return specs


def override_specs(
    specs: list[ExerciseSpec],
    strategy: ComparisonStrategy | None = None,
    timeout_seconds: float | None = None,
) -> list[ExerciseSpec]:
    """Apply command-line overrides on top of per-lesson settings."""
    changes: dict[str, object] = {}
    if strategy is not None:
        changes["strategy"] = strategy
    if timeout_seconds is not None:
        changes["timeout_seconds"] = timeout_seconds
    if not changes:
        return list(specs)
    return [replace(spec, **changes) for spec in specs]


def _load_metadata(path: Path) -> LessonMetadata:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise LessonError(f"Cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise LessonError(f"{path}: expected a mapping, got {type(data).__name__}")
    try:
        return LessonMetadata(**data)
    except ValidationError as e:
        raise LessonError(f"{path}: {e}") from e


def _spec_from_metadata(
    root: Path,
    lesson_dir: Path,
    metadata: LessonMetadata,
    config: GraderConfig,
) -> ExerciseSpec:
    relative = lesson_dir.relative_to(root).as_posix()
    exercise_id = lesson_dir.resolve().name if relative == "." else relative

    repo_path = Path(metadata.repo_path)
    if repo_path.is_absolute() or ".." in repo_path.parts:
        raise LessonError(f"{exercise_id}: repo_path must stay inside the sandbox: {metadata.repo_path}")

    return ExerciseSpec(
        id=exercise_id,
        exercise_path=(lesson_dir / metadata.exercise).resolve(),
        solution_path=(lesson_dir / metadata.solution).resolve(),
        strategy=metadata.strategy or config.default_strategy,
        timeout_seconds=metadata.timeout or config.timeout_seconds,
        vcs=metadata.vcs,
        repo_path=repo_path.as_posix(),
        interpreter=metadata.interpreter or config.interpreter,
        env=dict(metadata.env),
    )
