"""Disposable per-run workspaces."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import tempfile
import time
import unicodedata
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from lesson_runner.errors import SandboxError
from lesson_runner.lessons.base import ExerciseSpec

logger = logging.getLogger(__name__)

DEFAULT_TMP_DIRNAME = "lesson-runner"


@dataclass(frozen=True)
class GitIdentity:
    name: str
    email: str


@dataclass(frozen=True)
class Sandbox:
    """An isolated filesystem root owned by exactly one script run."""
    root: Path
    exercise_id: str
    role: str  # "exercise" or "solution"
    created_at: float
    has_repository: bool = False
    repo_path: str = "."

    @property
    def repo_dir(self) -> Path:
        return self.root / self.repo_path


def _sanitize(name: str) -> str:
    """Sanitize a string for use as a directory name prefix."""
    name = unicodedata.normalize("NFKD", name)
    name = re.sub(r"[^\w\s-]", "-", name.lower())
    return re.sub(r"[\s_-]+", "-", name).strip("-")[:60] or "exercise"


class SandboxFactory:
    """Provisions and tears down sandboxes under a shared temp root.

    Each sandbox lives in its own uniquely named subdirectory of the temp
    root, so concurrent runs never touch each other's files.
    """

    def __init__(self, tmp_root: str | Path | None = None, identity: GitIdentity | None = None):
        self.tmp_root = Path(tmp_root) if tmp_root else Path(tempfile.gettempdir()) / DEFAULT_TMP_DIRNAME
        self.identity = identity or GitIdentity("Lesson Runner", "runner@example.com")

    def provision(self, spec: ExerciseSpec, role: str = "exercise") -> Sandbox:
        """Create a fresh sandbox for one run of ``spec``.

        Raises:
            SandboxError: the directory could not be created, or the
                repository could not be initialised.
        """
        try:
            self.tmp_root.mkdir(parents=True, exist_ok=True)
            root = Path(tempfile.mkdtemp(prefix=f"{_sanitize(spec.id)}-{role}-", dir=self.tmp_root))
        except OSError as e:
            raise SandboxError(f"Cannot create sandbox under {self.tmp_root}: {e}") from e

        sandbox = Sandbox(
            root=root,
            exercise_id=spec.id,
            role=role,
            created_at=time.time(),
            has_repository=spec.vcs,
            repo_path=spec.repo_path,
        )

        if spec.vcs:
            try:
                self._init_repository(sandbox.repo_dir)
            except SandboxError:
                self.teardown(sandbox)
                raise

        logger.debug("Provisioned %s sandbox for %s at %s", role, spec.id, root)
        return sandbox

    def teardown(self, sandbox: Sandbox) -> None:
        """Remove the sandbox tree. Safe to call more than once; never raises."""
        if not sandbox.root.exists():
            return
        try:
            shutil.rmtree(sandbox.root)
        except OSError as e:
            logger.warning("Could not fully remove sandbox %s for %s: %s", sandbox.root, sandbox.exercise_id, e)
            return
        logger.debug("Removed sandbox %s", sandbox.root)

    @contextmanager
    def sandbox(self, spec: ExerciseSpec, role: str = "exercise") -> Iterator[Sandbox]:
        """Provision a sandbox and guarantee its teardown."""
        sandbox = self.provision(spec, role)
        try:
            yield sandbox
        finally:
            self.teardown(sandbox)

    def _init_repository(self, repo_dir: Path) -> None:
        commands = [
            ["git", "-c", "init.defaultBranch=main", "init", "-q"],
            ["git", "config", "user.name", self.identity.name],
            ["git", "config", "user.email", self.identity.email],
            ["git", "config", "commit.gpgsign", "false"],
        ]
        try:
            repo_dir.mkdir(parents=True, exist_ok=True)
            for command in commands:
                subprocess.run(command, cwd=repo_dir, capture_output=True, text=True, check=True, timeout=30)
        except FileNotFoundError as e:
            raise SandboxError("git executable not found") from e
        except subprocess.CalledProcessError as e:
            raise SandboxError(f"Git command failed: {' '.join(e.cmd)}\n{(e.stderr or '').strip()}") from e
        except (OSError, subprocess.TimeoutExpired) as e:
            raise SandboxError(f"Cannot initialise repository in {repo_dir}: {e}") from e
