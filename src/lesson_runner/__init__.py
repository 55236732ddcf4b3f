"""Grade lesson exercise scripts against their reference solutions."""

__version__ = "0.1.0"
