"""
Runs package: the run representations the payload builder reads from.
"""

from .base import BuildRun, ChangeSetRun
from .environment import EnvironmentRun

__all__ = ["BuildRun", "ChangeSetRun", "EnvironmentRun"]
