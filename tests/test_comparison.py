"""Tests for comparison strategies."""

import pytest

from lesson_runner.comparison import compare, create_comparator
from lesson_runner.comparison.filesystem import FilesystemTreeComparator
from lesson_runner.comparison.stdout import ExactStdoutComparator, normalize_lines
from lesson_runner.comparison.vcs import UnorderedVcsLogShapeComparator
from lesson_runner.config import ComparisonStrategy
from lesson_runner.execution.runner import RunOutcome, RunStatus


def _outcome(stdout="", exit_code=0, files=None, commits=None, timed_out=False) -> RunOutcome:
    return RunOutcome(
        exit_code=None if timed_out else exit_code,
        stdout=stdout,
        stderr="",
        duration_seconds=0.01,
        files=files or {},
        commit_subjects=commits,
        status=RunStatus.TIMED_OUT if timed_out else RunStatus.COMPLETED,
    )


def test_create_comparator_factory():
    assert isinstance(create_comparator(ComparisonStrategy.EXACT_STDOUT), ExactStdoutComparator)
    assert isinstance(create_comparator("filesystem-tree"), FilesystemTreeComparator)
    assert isinstance(create_comparator("vcs-log-shape-unordered"), UnorderedVcsLogShapeComparator)


def test_create_comparator_unknown_strategy():
    with pytest.raises(ValueError):
        create_comparator("fuzzy")


def test_exact_stdout_match_ignores_trailing_newline():
    verdict = compare(_outcome("hi\n"), _outcome("hi"), ComparisonStrategy.EXACT_STDOUT)
    assert verdict.passed is True
    assert verdict.mismatches == ()
    assert verdict.strategy == ComparisonStrategy.EXACT_STDOUT


def test_exact_stdout_mismatch():
    verdict = compare(_outcome("hi\n"), _outcome("bye\n"), ComparisonStrategy.EXACT_STDOUT)
    assert verdict.passed is False
    assert verdict.dimensions == ["stdout"]
    assert "line 1" in verdict.mismatches[0].detail


@pytest.mark.parametrize("exercise, solution", [("hi\n\n", "hi"), ("hi\n\n", "hi\n"), ("a\n\n\n", "a\n")])
def test_exact_stdout_counts_extra_blank_lines(exercise, solution):
    verdict = compare(_outcome(exercise), _outcome(solution), ComparisonStrategy.EXACT_STDOUT)
    assert verdict.passed is False
    assert verdict.dimensions == ["stdout"]


def test_exact_stdout_ignores_only_one_crlf():
    assert compare(_outcome("hi\r\n"), _outcome("hi"), ComparisonStrategy.EXACT_STDOUT).passed is True
    assert compare(_outcome("hi\r\n\r\n"), _outcome("hi"), ComparisonStrategy.EXACT_STDOUT).passed is False


def test_exact_stdout_distinguishes_undecodable_bytes():
    exercise = _outcome(b"\xff\n".decode("utf-8", errors="surrogateescape"))
    solution = _outcome(b"\xfe\n".decode("utf-8", errors="surrogateescape"))
    verdict = compare(exercise, solution, ComparisonStrategy.EXACT_STDOUT)
    assert verdict.passed is False
    assert verdict.dimensions == ["stdout"]


def test_empty_stdout_on_both_sides_passes():
    for strategy in (ComparisonStrategy.EXACT_STDOUT, ComparisonStrategy.NORMALIZED_STDOUT):
        assert compare(_outcome(""), _outcome(""), strategy).passed is True


def test_normalized_stdout_ignores_case_whitespace_and_order():
    exercise = _outcome("=== Day 1 ===\n\nHello   World\nDone\n")
    solution = _outcome("done\n=== day 1 ===\nhello world\n")
    assert compare(exercise, solution, ComparisonStrategy.NORMALIZED_STDOUT).passed is True


def test_normalized_stdout_mismatch():
    verdict = compare(_outcome("a\nb\n"), _outcome("a\nc\n"), ComparisonStrategy.NORMALIZED_STDOUT)
    assert verdict.passed is False
    assert verdict.dimensions == ["stdout"]


def test_normalize_lines_drops_blank_lines():
    assert normalize_lines("  A  B \n\n\t\nc") == frozenset({"a b", "c"})


def test_exit_code_difference_fails_even_when_stdout_matches():
    verdict = compare(_outcome("hi", exit_code=1), _outcome("hi", exit_code=0), ComparisonStrategy.EXACT_STDOUT)
    assert verdict.passed is False
    assert verdict.dimensions == ["exit_code"]


def test_timeout_always_fails():
    verdict = compare(_outcome("", timed_out=True), _outcome(""), ComparisonStrategy.NORMALIZED_STDOUT)
    assert verdict.passed is False
    assert "timeout" in verdict.dimensions


def test_filesystem_tree_names_differing_file():
    exercise = _outcome(files={"a.txt": "hash-1", "same.txt": "x"})
    solution = _outcome(files={"a.txt": "hash-2", "same.txt": "x"})
    verdict = compare(exercise, solution, ComparisonStrategy.FILESYSTEM_TREE)
    assert verdict.passed is False
    assert [m.subject for m in verdict.mismatches] == ["a.txt"]
    assert verdict.mismatches[0].detail == "content differs"


def test_filesystem_tree_extra_and_missing_paths():
    exercise = _outcome(files={"extra.txt": "1", "shared": "s"})
    solution = _outcome(files={"missing.txt": "2", "shared": "s"})
    verdict = compare(exercise, solution, ComparisonStrategy.FILESYSTEM_TREE)
    details = {m.subject: m.detail for m in verdict.mismatches}
    assert details == {"extra.txt": "only in exercise", "missing.txt": "only in solution"}


@pytest.mark.parametrize("strategy", [ComparisonStrategy.EXACT_STDOUT, ComparisonStrategy.FILESYSTEM_TREE])
def test_equality_strategies_are_symmetric(strategy):
    a = _outcome("one\ntwo\n", exit_code=0, files={"a.txt": "1", "b.txt": "2"})
    b = _outcome("one\nthree\n", exit_code=2, files={"a.txt": "9", "c.txt": "3"})
    assert compare(a, b, strategy) == compare(b, a, strategy)
    assert compare(a, a, strategy) == compare(a, a, strategy)


def test_compare_is_repeatable():
    a = _outcome("x", files={"f": "1"})
    b = _outcome("y", files={"f": "2"})
    first = compare(a, b, ComparisonStrategy.FILESYSTEM_TREE)
    second = compare(a, b, ComparisonStrategy.FILESYSTEM_TREE)
    assert first == second
    assert [m.detail for m in first.mismatches] == [m.detail for m in second.mismatches]


def test_vcs_log_shape_ordered():
    a = _outcome(commits=("Initial commit", "Add README"))
    b = _outcome(commits=("Add README", "Initial commit"))
    assert compare(a, a, ComparisonStrategy.VCS_LOG_SHAPE).passed is True
    verdict = compare(a, b, ComparisonStrategy.VCS_LOG_SHAPE)
    assert verdict.passed is False
    assert verdict.dimensions == ["vcs_log"]


def test_vcs_log_shape_unordered():
    a = _outcome(commits=("Initial commit", "Add README"))
    b = _outcome(commits=("Add README", "Initial commit"))
    assert compare(a, b, ComparisonStrategy.VCS_LOG_SHAPE_UNORDERED).passed is True

    c = _outcome(commits=("Initial commit", "Add LICENSE"))
    verdict = compare(a, c, ComparisonStrategy.VCS_LOG_SHAPE_UNORDERED)
    assert sorted(m.subject for m in verdict.mismatches) == ["Add LICENSE", "Add README"]


def test_vcs_log_shape_missing_repository():
    with_repo = _outcome(commits=())
    without_repo = _outcome(commits=None)
    assert compare(without_repo, without_repo, ComparisonStrategy.VCS_LOG_SHAPE).passed is True
    verdict = compare(with_repo, without_repo, ComparisonStrategy.VCS_LOG_SHAPE)
    assert verdict.passed is False
    assert "no repository" in verdict.mismatches[0].detail
