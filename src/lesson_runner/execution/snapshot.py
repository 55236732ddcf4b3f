"""Filesystem and repository snapshots of a finished sandbox."""

from __future__ import annotations

import hashlib
import os
import subprocess
from pathlib import Path

from lesson_runner.errors import RunnerError

VCS_METADATA_DIRS = frozenset({".git"})
_CHUNK_SIZE = 1 << 16


def snapshot_tree(root: Path) -> dict[str, str]:
    """Map every file under ``root`` (relative POSIX path) to its SHA-256.

    VCS metadata directories are skipped at any depth. Symlinks are not
    followed; their target string is hashed instead.
    """
    files: dict[str, str] = {}
    try:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            dirnames[:] = [d for d in dirnames if d not in VCS_METADATA_DIRS]
            base = Path(dirpath)
            # Directory symlinks show up in dirnames but are not descended into.
            entries = filenames + [d for d in dirnames if (base / d).is_symlink()]
            for name in entries:
                path = base / name
                if not (path.is_symlink() or path.is_file()):
                    continue  # fifos, sockets, devices
                files[path.relative_to(root).as_posix()] = _hash_entry(path)
    except OSError as e:
        raise RunnerError(f"Cannot snapshot {root}: {e}") from e
    return dict(sorted(files.items()))


def commit_subjects(repo_dir: Path, env: dict[str, str] | None = None) -> tuple[str, ...] | None:
    """Return commit subjects oldest first, or None if there is no repository."""
    if not (repo_dir / ".git").exists():
        return None

    try:
        head = subprocess.run(
            ["git", "rev-parse", "--verify", "-q", "HEAD"],
            cwd=repo_dir, env=env, capture_output=True, text=True, timeout=30,
        )
        if head.returncode != 0:
            return ()  # initialised, no commits yet
        log = subprocess.run(
            ["git", "log", "--reverse", "--format=%s"],
            cwd=repo_dir, env=env, capture_output=True, text=True, timeout=30, check=True,
        )
    except FileNotFoundError as e:
        raise RunnerError("git executable not found") from e
    except subprocess.CalledProcessError as e:
        raise RunnerError(f"git log failed in {repo_dir}: {(e.stderr or '').strip()}") from e
    except subprocess.TimeoutExpired as e:
        raise RunnerError(f"git log timed out in {repo_dir}") from e

    return tuple(log.stdout.splitlines())


def _hash_entry(path: Path) -> str:
    digest = hashlib.sha256()
    if path.is_symlink():
        digest.update(b"symlink:")
        digest.update(os.readlink(path).encode("utf-8", "surrogateescape"))
        return digest.hexdigest()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _raise(error: OSError) -> None:
    raise error
