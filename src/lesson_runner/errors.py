"""Exception classes for the lesson grader."""


class LessonRunnerError(Exception):
    """Base exception for grader errors."""


class SandboxError(LessonRunnerError):
    """Sandbox provisioning failed (disk, permissions, missing git)."""


class RunnerError(LessonRunnerError):
    """Script could not be executed or its outcome could not be captured."""


class LessonError(LessonRunnerError):
    """Lesson tree or lesson metadata is invalid."""


class ReportError(LessonRunnerError):
    """The report could not be written to its output sink."""


class GradingCancelled(LessonRunnerError):
    """The batch was cancelled while this task was running."""
