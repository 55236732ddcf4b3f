"""Script execution and outcome capture."""

from .runner import RunOutcome, RunStatus, ScriptRunner
from .snapshot import commit_subjects, snapshot_tree
