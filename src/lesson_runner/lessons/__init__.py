"""Lesson tree discovery."""

from .base import ExerciseSpec
from .discovery import METADATA_FILENAME, discover_exercises, override_specs
