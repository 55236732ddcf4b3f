"""Isolated workspaces for script runs."""

from .workspace import GitIdentity, Sandbox, SandboxFactory
