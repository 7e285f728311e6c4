"""
Run built only from the Jenkins step environment.
Used when the Jenkins remote API is not reachable: there is no history and no change sets.
"""

import logging
import os
import time
from typing import Dict, Optional
from .base import BuildRun

logger = logging.getLogger(__name__)


def relative_url(url: str, root_url: str) -> str:
    """Strip the Jenkins root URL from an absolute URL, e.g. 'https://ci/job/api/17/' -> 'job/api/17/'."""
    if not url:
        return ''
    root = (root_url or '').rstrip('/') + '/'
    if root != '/' and url.startswith(root):
        return url[len(root):]
    return url


class EnvironmentRun(BuildRun):
    """Run described by JOB_NAME, JOB_URL, BUILD_NUMBER, BUILD_URL and an optional console log file."""

    def __init__(self, environ: Dict[str, str], result: Optional[str], log_file: Optional[str] = None, start_time_ms: Optional[int] = None):
        self.environ = dict(environ)
        self.log_file = log_file
        root = self.environ.get('JENKINS_URL', '')
        if start_time_ms is None:
            # BUILD_START_TIME is not set by Jenkins itself; pipelines may export currentBuild.startTimeInMillis there
            raw = self.environ.get('BUILD_START_TIME')
            if raw:
                start_time_ms = int(raw)
            else:
                logger.info("BUILD_START_TIME not set, using the current time as run start; duration will be 0")
                start_time_ms = int(time.time() * 1000)
        super().__init__(
            job_name=self.environ.get('JOB_NAME', ''),
            job_url=relative_url(self.environ.get('JOB_URL', ''), root),
            number=int(self.environ.get('BUILD_NUMBER') or 0),
            url=relative_url(self.environ.get('BUILD_URL', ''), root),
            start_time_ms=start_time_ms,
            result=result,
        )

    @classmethod
    def from_os_environ(cls, result: Optional[str], log_file: Optional[str] = None) -> "EnvironmentRun":
        return cls(dict(os.environ), result, log_file=log_file)

    def get_environment(self) -> Dict[str, str]:
        return dict(self.environ)

    def get_log_text(self) -> str:
        if not self.log_file:
            return ''
        with open(self.log_file, 'r', encoding='utf-8', errors='replace') as fh:
            return fh.read()

    def get_previous_build(self) -> Optional[BuildRun]:
        return None
