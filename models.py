"""
Data models for the build notification payload sent to CloudAEye.
"""

import json
from typing import List, Dict, Any, Optional


class BuildResult:
    """
    Terminal results a Jenkins run can report.
    """
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    UNSTABLE = "UNSTABLE"
    ABORTED = "ABORTED"
    NOT_BUILT = "NOT_BUILT"

    # only these two results are exported
    NOTIFIABLE = (SUCCESS, FAILURE)


class EventType:
    PR = "PR"
    PUSH = "PUSH"
    OTHER = "OTHER"


class ChangeLogEntry:
    """
    One VCS commit recorded against a run.
    """
    def __init__(self, message: str, commit_id: str, author: str, timestamp: int, file_paths: Optional[List[str]] = None):
        self.message = message
        self.commit_id = commit_id
        self.author = author  # author's unique id, not the display name
        self.timestamp = timestamp
        self.file_paths = list(file_paths or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "commitId": self.commit_id,
            "author": self.author,
            "timestamp": self.timestamp,
            "filePaths": list(self.file_paths),
        }

    def __repr__(self):
        return f"ChangeLogEntry(commit_id={self.commit_id!r}, author={self.author!r})"


class SourceEvent:
    """
    Describes the VCS event that triggered the run.

    ``fields`` holds the event specific keys (prId/prSourceBranch/... for PR events,
    branch/commit/prevCommit for pushes, nothing for other events). ``change_log`` is
    None when the run cannot enumerate change sets; the key is then left out of the payload.
    """
    def __init__(self, url: Optional[str], event_type: str, fields: Optional[Dict[str, Any]] = None, change_log: Optional[List[ChangeLogEntry]] = None):
        self.url = url
        self.event_type = event_type
        self.fields = dict(fields or {})
        self.change_log = change_log

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"url": self.url, "eventType": self.event_type}
        data.update(self.fields)
        if self.change_log is not None:
            data["changeLog"] = [entry.to_dict() for entry in self.change_log]
        return data


class JobDetails:
    """
    Job metadata and logs of one run.
    """
    def __init__(self, name: str, job_id: str, build_number: int, duration: int, start_time: int, end_time: int, url: str, logs: List[str], status: str):
        self.name = name
        self.job_id = job_id
        self.build_number = build_number
        self.duration = duration
        self.start_time = start_time
        self.end_time = end_time
        self.url = url
        self.logs = logs
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "id": self.job_id,
            "buildNumber": self.build_number,
            "duration": self.duration,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "url": self.url,
            "logs": list(self.logs),
            "status": self.status,
        }


class Payload:
    """
    Top-level document posted to the CloudAEye webhook.
    """
    def __init__(self, job: JobDetails, source: SourceEvent):
        self.job = job
        self.source = source

    def to_dict(self) -> Dict[str, Any]:
        return {"job": self.job.to_dict(), "source": self.source.to_dict()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
