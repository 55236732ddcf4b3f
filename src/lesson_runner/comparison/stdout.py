"""Standard output comparison strategies."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from lesson_runner.config import ComparisonStrategy

from .base import Comparator, Mismatch

if TYPE_CHECKING:
    from lesson_runner.execution.runner import RunOutcome

_WHITESPACE = re.compile(r"\s+")


class ExactStdoutComparator(Comparator):
    """Byte-for-byte stdout, ignoring a single trailing newline."""

    @property
    def strategy(self) -> ComparisonStrategy:
        return ComparisonStrategy.EXACT_STDOUT

    def compare_dimension(self, exercise: RunOutcome, solution: RunOutcome) -> list[Mismatch]:
        left = strip_trailing_newline(exercise.stdout)
        right = strip_trailing_newline(solution.stdout)
        if left == right:
            return []
        return [Mismatch("stdout", detail=_first_difference(left.split("\n"), right.split("\n")))]


class NormalizedStdoutComparator(Comparator):
    """Sets of stdout lines, case and whitespace insensitive.

    Exercises echo decorative banners in varying order and spacing, so only
    the set of non-blank normalized lines matters.
    """

    @property
    def strategy(self) -> ComparisonStrategy:
        return ComparisonStrategy.NORMALIZED_STDOUT

    def compare_dimension(self, exercise: RunOutcome, solution: RunOutcome) -> list[Mismatch]:
        left = normalize_lines(exercise.stdout)
        right = normalize_lines(solution.stdout)
        if left == right:
            return []
        only_exercise = len(left - right)
        only_solution = len(right - left)
        return [Mismatch(
            "stdout",
            detail=f"{only_exercise} line(s) only in exercise, {only_solution} line(s) only in solution",
        )]


def strip_trailing_newline(text: str) -> str:
    """Drop one final '\n' or '\r\n'; blank lines before it still count."""
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


def normalize_lines(text: str) -> frozenset[str]:
    lines = (_WHITESPACE.sub(" ", line).strip().lower() for line in text.splitlines())
    return frozenset(line for line in lines if line)


def _first_difference(left: list[str], right: list[str]) -> str:
    for number, (a, b) in enumerate(zip(left, right), start=1):
        if a != b:
            return f"first difference at line {number}"
    return f"output lengths differ ({min(len(left), len(right))} common line(s))"
