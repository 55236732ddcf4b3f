"""Structured JSON-lines grading event log."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from lesson_runner.execution.runner import RunOutcome
    from lesson_runner.lessons.base import ExerciseSpec, GradeResult


class GradingLogger:
    """Logs grading events as structured JSON lines.

    Worker threads share one logger, so appends are serialised.
    """

    def __init__(self, log_path: str | Path):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._events: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    @property
    def events(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._events)

    def _write_event(self, event: dict[str, Any]) -> None:
        event["timestamp"] = time.time()
        with self._lock:
            self._events.append(event)
            with open(self.log_path, "a") as f:
                f.write(json.dumps(event, default=str) + "\n")

    def log_grade_start(self, spec: ExerciseSpec) -> None:
        self._write_event({
            "event": "grade_start",
            "exercise_id": spec.id,
            "strategy": spec.strategy.value,
            "timeout_seconds": spec.timeout_seconds,
            "vcs": spec.vcs,
        })

    def log_script_run(self, exercise_id: str, role: str, outcome: RunOutcome) -> None:
        self._write_event({
            "event": "script_run",
            "exercise_id": exercise_id,
            "role": role,
            "status": outcome.status.value,
            "exit_code": outcome.exit_code,
            "duration_seconds": round(outcome.duration_seconds, 4),
            "file_count": len(outcome.files),
            "commit_count": None if outcome.commit_subjects is None else len(outcome.commit_subjects),
        })

    def log_result(self, result: GradeResult) -> None:
        if result.verdict is None:
            self._write_event({
                "event": "grade_error",
                "exercise_id": result.exercise_id,
                "error_kind": result.error_kind,
                "error": result.error[:1000],
            })
            return
        self._write_event({
            "event": "verdict",
            "exercise_id": result.exercise_id,
            "passed": result.verdict.passed,
            "dimensions": result.verdict.dimensions,
            "wall_clock_seconds": round(result.wall_clock_seconds, 4),
        })

    def log_batch_end(self, summary: dict[str, Any]) -> None:
        self._write_event({
            "event": "batch_end",
            "summary": summary,
        })
