"""
Run interfaces used by the payload builder.

A run exposes job metadata, its environment snapshot, its console text and its
position in the job history. Runs that can also enumerate their change-log sets
derive from ChangeSetRun; the builder only collects a change log for those.
"""

from typing import Dict, List, Optional
from models import BuildResult, ChangeLogEntry


class BuildRun:
    """
    One execution of a named Jenkins job.

    Subclasses set the metadata attributes and implement the accessors.
    """

    def __init__(self, job_name: str, job_url: str, number: int, url: str, start_time_ms: int, result: Optional[str]):
        self.job_name = job_name
        self.job_url = job_url
        self.number = number
        self.url = url
        self.start_time_ms = start_time_ms
        self.result = result

    def get_environment(self) -> Dict[str, str]:
        raise NotImplementedError

    def get_log_text(self) -> str:
        raise NotImplementedError

    def get_previous_build(self) -> Optional["BuildRun"]:
        raise NotImplementedError

    def get_previous_successful_build(self) -> Optional["BuildRun"]:
        """Return the closest earlier run whose result is SUCCESS, or None.

        UNSTABLE runs do not count as successful.
        """
        r = self.get_previous_build()
        while r is not None and r.result != BuildResult.SUCCESS:
            r = r.get_previous_build()
        return r

    def __repr__(self):
        return f"{type(self).__name__}({self.job_name!r}, #{self.number}, result={self.result!r})"


class ChangeSetRun(BuildRun):
    """
    A run that can enumerate the change-log sets recorded against it.
    """

    def get_change_sets(self) -> List[List[ChangeLogEntry]]:
        """Return the run's change-log sets, each an ordered list of entries."""
        raise NotImplementedError
