"""Batch grading harness: sandbox -> run exercise -> run solution -> compare."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable

from lesson_runner.comparison import compare
from lesson_runner.config import GraderConfig
from lesson_runner.errors import GradingCancelled, RunnerError, SandboxError
from lesson_runner.execution.runner import RunOutcome, ScriptRunner
from lesson_runner.lessons.base import ExerciseSpec, GradeResult
from lesson_runner.logging.logger import GradingLogger
from lesson_runner.report import Report, aggregate
from lesson_runner.sandbox.workspace import GitIdentity, SandboxFactory

logger = logging.getLogger(__name__)


class GradingHarness:
    """Grades exercises against their solutions on a bounded worker pool."""

    def __init__(
        self,
        config: GraderConfig,
        grading_logger: GradingLogger | None = None,
        sandboxes: SandboxFactory | None = None,
        runner: ScriptRunner | None = None,
    ):
        self.config = config
        self.cancel_event = threading.Event()
        identity = GitIdentity(config.git_author_name, config.git_author_email)
        self.sandboxes = sandboxes or SandboxFactory(config.tmp_root, identity)
        self.runner = runner or ScriptRunner(config.env_allowlist, identity, self.cancel_event)
        # An injected runner still has to observe this harness's cancellation.
        self.runner.cancel_event = self.cancel_event
        self.grading_logger = grading_logger

    def cancel(self) -> None:
        """Cancel the batch: running scripts are killed and their sandboxes removed."""
        self.cancel_event.set()

    def grade(self, spec: ExerciseSpec) -> GradeResult:
        """Grade one exercise. Infrastructure failures become an errored result."""
        start = time.monotonic()
        if self.grading_logger:
            self.grading_logger.log_grade_start(spec)

        try:
            exercise = self._run_in_sandbox(spec, "exercise")
            solution = self._run_in_sandbox(spec, "solution")
            verdict = compare(exercise, solution, spec.strategy)
            result = GradeResult(exercise_id=spec.id, strategy=spec.strategy, verdict=verdict)
        except GradingCancelled:
            raise
        except SandboxError as e:
            result = _errored(spec, "sandbox", e)
        except RunnerError as e:
            result = _errored(spec, "runner", e)
        except Exception as e:
            logger.exception("Unexpected error grading %s", spec.id)
            result = _errored(spec, "internal", e)

        result.wall_clock_seconds = time.monotonic() - start
        if self.grading_logger:
            self.grading_logger.log_result(result)
        return result

    def grade_batch(self, specs: Iterable[ExerciseSpec]) -> Report:
        """Grade all specs in parallel and aggregate once every task has finished.

        Exercises stopped by ``cancel()`` are reported as errored with
        ``error_kind="cancelled"``. On KeyboardInterrupt the batch is cancelled,
        queued tasks never start, running tasks clean up, and the interrupt is
        re-raised.
        """
        specs = list(specs)
        results: dict[str, GradeResult] = {}
        executor = ThreadPoolExecutor(max_workers=self.config.parallel, thread_name_prefix="grader")
        futures: dict[Future[GradeResult], ExerciseSpec] = {}
        try:
            for spec in specs:
                futures[executor.submit(self.grade, spec)] = spec
            for future, spec in futures.items():
                try:
                    results[spec.id] = future.result()
                except GradingCancelled as e:
                    logger.info("%s: cancelled", spec.id)
                    results[spec.id] = GradeResult(spec.id, spec.strategy, error=str(e), error_kind="cancelled")
                    if self.grading_logger:
                        self.grading_logger.log_result(results[spec.id])
        except KeyboardInterrupt:
            logger.warning("Interrupted; cancelling %d task(s)", len(futures))
            self.cancel()
            raise
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        report = aggregate(results)
        if self.grading_logger:
            self.grading_logger.log_batch_end(report.to_dict()["summary"])
        return report

    def _run_in_sandbox(self, spec: ExerciseSpec, role: str) -> RunOutcome:
        script = spec.exercise_path if role == "exercise" else spec.solution_path
        with self.sandboxes.sandbox(spec, role) as sandbox:
            outcome = self.runner.run(
                script,
                sandbox,
                timeout=spec.timeout_seconds,
                interpreter=spec.interpreter,
                env=spec.env,
            )
        if self.grading_logger:
            self.grading_logger.log_script_run(spec.id, role, outcome)
        return outcome


def _errored(spec: ExerciseSpec, kind: str, error: Exception) -> GradeResult:
    logger.warning("%s errored (%s): %s", spec.id, kind, error)
    return GradeResult(exercise_id=spec.id, strategy=spec.strategy, error=str(error), error_kind=kind)
