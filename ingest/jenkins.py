"""
Jenkins ingestion module: reads build records and console text through the Jenkins remote API.
JenkinsRun exposes a build record through the run interface the payload builder consumes.
"""

import logging
from typing import List, Dict, Any, Optional, Tuple
from urllib.parse import unquote

from models import BuildResult, ChangeLogEntry
from runs.base import BuildRun, ChangeSetRun
from runs.environment import relative_url
from storage.cache import BuildCache
from storage.retry import get_with_retries

logger = logging.getLogger(__name__)


class JenkinsApiError(RuntimeError):
    """Raised when Jenkins answers a read with a non-200 status."""

    def __init__(self, url: str, status: int, body: str = ''):
        super().__init__(f"Jenkins API request to {url} failed with status {status}")
        self.url = url
        self.status = status
        self.body = body


class JenkinsClient:
    """
    Client for the Jenkins remote JSON API.
    """

    def __init__(self, base_url: str, user: Optional[str] = None, api_token: Optional[str] = None, cache: Optional[BuildCache] = None):
        self.base_url = (base_url or '').rstrip('/') + '/'
        self.auth: Optional[Tuple[str, str]] = (user, api_token) if user and api_token else None
        self.cache = cache

    def absolute_url(self, url: str) -> str:
        """Resolve a build URL (absolute or relative to the Jenkins root) and ensure a trailing slash."""
        if not url.startswith(('http://', 'https://')):
            url = self.base_url + url.lstrip('/')
        return url if url.endswith('/') else url + '/'

    def _get(self, url: str, params: Optional[Dict[str, str]] = None):
        resp = get_with_retries(url, auth=self.auth, params=params)
        if resp.status_code != 200:
            raise JenkinsApiError(url, resp.status_code, getattr(resp, 'text', ''))
        return resp

    def get_build(self, build_url: str) -> Dict[str, Any]:
        """Return the JSON record of a build. Completed builds are served from the cache when configured."""
        url = self.absolute_url(build_url)
        if self.cache:
            cached = self.cache.get(url)
            if cached is not None:
                return cached
        logger.debug("Fetching build record %s", url)
        record = self._get(url + 'api/json').json()
        if self.cache:
            self.cache.put(url, record)
        return record

    def get_job_builds(self, job_url: str) -> List[Dict[str, Any]]:
        """Return number, result and url of the builds Jenkins lists for a job, newest first."""
        url = self.absolute_url(job_url)
        resp = self._get(url + 'api/json', params={'tree': 'builds[number,result,url]'})
        return resp.json().get('builds') or []

    def get_console_text(self, build_url: str) -> str:
        """Return the full console text accumulated so far for a build."""
        url = self.absolute_url(build_url)
        return self._get(url + 'consoleText').text


def job_url_from_build_url(build_url: str) -> str:
    """'job/api/17/' -> 'job/api/'."""
    parts = build_url.rstrip('/').split('/')
    return '/'.join(parts[:-1]) + '/' if len(parts) > 1 else ''


def job_full_name(job_url: str) -> str:
    """'job/folder/job/api/' -> 'folder/api', the job's full name."""
    parts = [p for p in job_url.strip('/').split('/') if p]
    names = [unquote(parts[i + 1]) for i in range(len(parts) - 1) if parts[i] == 'job']
    return '/'.join(names)


def _author_id(author: Dict[str, Any]) -> str:
    """Jenkins user id: last path segment of the author's user page, falling back to the full name."""
    absolute = (author or {}).get('absoluteUrl') or ''
    if absolute:
        return unquote(absolute.rstrip('/').rsplit('/', 1)[-1])
    return (author or {}).get('fullName') or ''


def change_log_entry_from_item(item: Dict[str, Any]) -> ChangeLogEntry:
    return ChangeLogEntry(
        message=item.get('msg', ''),
        commit_id=item.get('commitId'),
        author=_author_id(item.get('author') or {}),
        timestamp=item.get('timestamp'),
        file_paths=item.get('affectedPaths') or [],
    )


class JenkinsRun(ChangeSetRun):
    """Build record read from the Jenkins API.

    Only the run being notified carries the step environment; runs reached through
    the history report an empty one.
    """

    def __init__(self, client: JenkinsClient, record: Dict[str, Any], environ: Optional[Dict[str, str]] = None, result: Optional[str] = None):
        self.client = client
        self.record = record
        self.environ = dict(environ or {})
        self.absolute_url = client.absolute_url(record.get('url') or '')
        url = relative_url(self.absolute_url, client.base_url)
        job_url = job_url_from_build_url(url)
        super().__init__(
            job_name=self.environ.get('JOB_NAME') or job_full_name(job_url),
            job_url=job_url,
            number=int(record.get('number') or 0),
            url=url,
            start_time_ms=int(record.get('timestamp') or 0),
            # the API reports a null result while the build is still running
            result=result or record.get('result'),
        )
        self._previous: Optional[BuildRun] = None
        self._previous_loaded = False

    @classmethod
    def fetch(cls, client: JenkinsClient, build_url: str, environ: Optional[Dict[str, str]] = None, result: Optional[str] = None) -> "JenkinsRun":
        return cls(client, client.get_build(build_url), environ=environ, result=result)

    def get_environment(self) -> Dict[str, str]:
        return dict(self.environ)

    def get_log_text(self) -> str:
        return self.client.get_console_text(self.absolute_url)

    def get_previous_build(self) -> Optional[BuildRun]:
        if not self._previous_loaded:
            previous = self.record.get('previousBuild')
            self._previous = JenkinsRun.fetch(self.client, previous['url']) if previous and previous.get('url') else None
            self._previous_loaded = True
        return self._previous

    def get_previous_successful_build(self) -> Optional[BuildRun]:
        # one job-level read, then only the matching record is fetched
        successes = [
            b for b in self.client.get_job_builds(self.job_url)
            if b.get('result') == BuildResult.SUCCESS and b.get('url') and int(b.get('number') or 0) < self.number
        ]
        if not successes:
            return None
        latest = max(successes, key=lambda b: int(b['number']))
        return JenkinsRun.fetch(self.client, latest['url'])

    def get_change_sets(self) -> List[List[ChangeLogEntry]]:
        # pipeline runs expose 'changeSets', freestyle builds a single 'changeSet'
        if 'changeSets' in self.record:
            raw_sets = self.record.get('changeSets') or []
        else:
            raw_sets = [self.record['changeSet']] if self.record.get('changeSet') else []
        return [[change_log_entry_from_item(item) for item in (s.get('items') or [])] for s in raw_sets]
