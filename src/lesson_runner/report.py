"""Batch report aggregation and rendering."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from lesson_runner.comparison.base import Mismatch
from lesson_runner.config import ComparisonStrategy
from lesson_runner.errors import ReportError
from lesson_runner.lessons.base import GradeResult

PASSED = "passed"
FAILED = "failed"
ERRORED = "errored"

_TEXT_LABELS = {PASSED: "PASS", FAILED: "FAIL", ERRORED: "ERROR"}


@dataclass(frozen=True)
class ReportEntry:
    exercise_id: str
    status: str
    strategy: ComparisonStrategy
    mismatches: tuple[Mismatch, ...] = ()
    error: str = ""


@dataclass(frozen=True)
class Report:
    """Immutable batch report; both renderings derive from this value."""
    entries: tuple[ReportEntry, ...]

    def count(self, status: str) -> int:
        return sum(1 for entry in self.entries if entry.status == status)

    @property
    def passed(self) -> int:
        return self.count(PASSED)

    @property
    def failed(self) -> int:
        return self.count(FAILED)

    @property
    def errored(self) -> int:
        return self.count(ERRORED)

    @property
    def total(self) -> int:
        return len(self.entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "total": self.total,
                "passed": self.passed,
                "failed": self.failed,
                "errored": self.errored,
            },
            "results": [
                {
                    "id": entry.exercise_id,
                    "status": entry.status,
                    "strategy": entry.strategy.value,
                    "mismatches": [
                        {"dimension": m.dimension, "subject": m.subject, "detail": m.detail}
                        for m in entry.mismatches
                    ],
                    "error": entry.error,
                }
                for entry in self.entries
            ],
        }


def aggregate(results: Mapping[str, GradeResult]) -> Report:
    """Build a report ordered by exercise id, independent of completion order."""
    entries = []
    for exercise_id in sorted(results):
        result = results[exercise_id]
        if result.verdict is None:
            entries.append(ReportEntry(exercise_id, ERRORED, result.strategy, error=result.error))
        else:
            status = PASSED if result.verdict.passed else FAILED
            entries.append(ReportEntry(exercise_id, status, result.verdict.strategy, result.verdict.mismatches))
    return Report(entries=tuple(entries))


def render_json(report: Report) -> str:
    return json.dumps(report.to_dict(), indent=2) + "\n"


def render_text(report: Report) -> str:
    lines = []
    for entry in report.entries:
        line = f"{_TEXT_LABELS[entry.status]:<5} {entry.exercise_id} ({entry.strategy.value})"
        if entry.status == FAILED and entry.mismatches:
            line += ": " + "; ".join(m.describe() for m in entry.mismatches)
        elif entry.status == ERRORED:
            line += f": {entry.error}"
        lines.append(line)
    lines.append(
        f"{report.total} exercise(s): {report.passed} passed, {report.failed} failed, {report.errored} errored"
    )
    return "\n".join(lines) + "\n"


def write_report(text: str, output: str | Path | None = None) -> None:
    """Write rendered report to a file, or to stdout when no path is given."""
    try:
        if output is None:
            sys.stdout.write(text)
            sys.stdout.flush()
        else:
            path = Path(output)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ReportError(f"Cannot write report to {output or 'stdout'}: {e}") from e
