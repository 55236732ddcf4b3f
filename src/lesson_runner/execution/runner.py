"""Script execution inside a sandbox."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping

from lesson_runner.errors import GradingCancelled, RunnerError
from lesson_runner.sandbox.workspace import GitIdentity, Sandbox

from .snapshot import commit_subjects, snapshot_tree

logger = logging.getLogger(__name__)

DEFAULT_ENV_ALLOWLIST = ("PATH", "LANG", "LC_ALL", "TERM")
POLL_INTERVAL_SECONDS = 0.1


class RunStatus(str, Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class RunOutcome:
    """Everything observable about one finished script run."""
    exit_code: int | None  # None when the process was killed on timeout
    stdout: str
    stderr: str
    duration_seconds: float
    files: dict[str, str] = field(default_factory=dict, hash=False)
    commit_subjects: tuple[str, ...] | None = None
    status: RunStatus = RunStatus.COMPLETED

    @property
    def timed_out(self) -> bool:
        return self.status == RunStatus.TIMED_OUT


class ScriptRunner:
    """Run a script in a sandbox with a scrubbed environment and a hard timeout."""

    def __init__(
        self,
        env_allowlist: tuple[str, ...] | list[str] = DEFAULT_ENV_ALLOWLIST,
        identity: GitIdentity | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.env_allowlist = tuple(env_allowlist)
        self.identity = identity or GitIdentity("Lesson Runner", "runner@example.com")
        self.cancel_event = cancel_event or threading.Event()

    def run(
        self,
        script_path: str | Path,
        sandbox: Sandbox,
        timeout: float,
        interpreter: str = "bash",
        env: Mapping[str, str] | None = None,
    ) -> RunOutcome:
        """Execute ``script_path`` with the sandbox root as working directory.

        A non-zero exit code is a normal outcome. A run that exceeds
        ``timeout`` has its whole process group killed and is reported with
        ``RunStatus.TIMED_OUT``. Background jobs still alive when the script exits
        are killed with it. Output is decoded with ``surrogateescape`` so
        invalid UTF-8 bytes stay distinguishable.

        Raises:
            RunnerError: the script is missing or the process cannot be spawned.
            GradingCancelled: the shared cancel event was set mid-run.
        """
        script = Path(script_path).resolve()
        if not script.is_file():
            raise RunnerError(f"Script not found: {script}")
        if self.cancel_event.is_set():
            raise GradingCancelled(f"Cancelled before running {script.name}")

        run_env = self.build_env(sandbox, env)
        start = time.monotonic()
        try:
            process = subprocess.Popen(
                [interpreter, str(script)],
                cwd=sandbox.root,
                env=run_env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            raise RunnerError(f"Interpreter not found: {interpreter}") from e
        except OSError as e:
            raise RunnerError(f"Cannot start {script}: {e}") from e

        stdout, stderr, status = self._wait(process, start + timeout, script)
        # Background jobs left by the script must not touch the tree being snapshotted.
        _kill_group(process)
        duration = time.monotonic() - start

        logger.info(
            "%s %s: %s exit=%s in %.2fs",
            sandbox.exercise_id, sandbox.role, status.value, process.returncode, duration,
        )

        return RunOutcome(
            exit_code=None if status == RunStatus.TIMED_OUT else process.returncode,
            stdout=stdout.decode("utf-8", errors="surrogateescape"),
            stderr=stderr.decode("utf-8", errors="surrogateescape"),
            duration_seconds=duration,
            files=snapshot_tree(sandbox.root),
            commit_subjects=commit_subjects(sandbox.repo_dir, env=run_env),
            status=status,
        )

    def build_env(self, sandbox: Sandbox, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        """Explicit child environment: allow-listed host variables only."""
        run_env = {key: os.environ[key] for key in self.env_allowlist if key in os.environ}
        run_env.setdefault("PATH", os.defpath)
        run_env.update({
            "HOME": str(sandbox.root),
            "GIT_CONFIG_NOSYSTEM": "1",
            "GIT_AUTHOR_NAME": self.identity.name,
            "GIT_AUTHOR_EMAIL": self.identity.email,
            "GIT_COMMITTER_NAME": self.identity.name,
            "GIT_COMMITTER_EMAIL": self.identity.email,
        })
        if extra:
            run_env.update(extra)
        return run_env

    def _wait(self, process: subprocess.Popen, deadline: float, script: Path) -> tuple[bytes, bytes, RunStatus]:
        """Wait for exit while watching the deadline and the cancel event."""
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                _kill_group(process)
                stdout, stderr = process.communicate()
                return stdout, stderr, RunStatus.TIMED_OUT
            if self.cancel_event.is_set():
                _kill_group(process)
                process.communicate()
                raise GradingCancelled(f"Cancelled while running {script.name}")
            try:
                stdout, stderr = process.communicate(timeout=min(POLL_INTERVAL_SECONDS, remaining))
            except subprocess.TimeoutExpired:
                continue
            return stdout, stderr, RunStatus.COMPLETED


def _kill_group(process: subprocess.Popen) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass  # group already gone
    process.kill()
