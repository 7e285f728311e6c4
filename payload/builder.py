"""
Payload builder: assembles the job, source and change-log sections of a notification.

The builder only reads from the run and its history. Any error raised while reading
the environment, the console log or the change sets propagates to the caller.
"""
import logging
import math
import time
from typing import Dict, List, Optional

from models import BuildResult, ChangeLogEntry, EventType, JobDetails, Payload, SourceEvent
from runs.base import BuildRun, ChangeSetRun
from .logs import extract_run_logs

logger = logging.getLogger(__name__)

# (id, source branch, target branch, link) variables of each PR integration, in priority order
PR_ENV_KEYS = [
    ("CHANGE_ID", "CHANGE_BRANCH", "CHANGE_TARGET", "CHANGE_URL"),  # multibranch pipelines
    ("ghprbPullId", "ghprbSourceBranch", "ghprbTargetBranch", "ghprbPullLink"),  # GitHub pull request builder
]


def current_time_ms() -> int:
    return int(time.time() * 1000)


def compute_duration(start_ms: int, now_ms: int) -> int:
    """Seconds elapsed between run start and now, rounded up."""
    return int(math.ceil((now_ms - start_ms) / 1000.0))


def build_status(result: Optional[str]) -> str:
    return "success" if result == BuildResult.SUCCESS else "failure"


def build_job_details(run: BuildRun, now_ms: int) -> JobDetails:
    """Collect job metadata and logs. endTime is the notification time, not the recorded completion time."""
    logger.info("[#%s] Extracting run logs", run.number)
    logs = extract_run_logs(run.number, run.get_log_text())
    return JobDetails(
        name=run.job_name,
        job_id=run.job_url,
        build_number=run.number,
        duration=compute_duration(run.start_time_ms, now_ms),
        start_time=run.start_time_ms,
        end_time=now_ms,
        url=run.url,
        logs=logs,
        status=build_status(run.result),
    )


def classify_source(env: Dict[str, str], build_number: int = 0) -> SourceEvent:
    """Classify the triggering VCS event from the environment. The first matching rule wins."""
    url = env.get("GIT_URL")
    for id_key, source_key, target_key, link_key in PR_ENV_KEYS:
        if id_key in env:
            logger.info("[#%s] Identified git event: PR. Extracting details of the PR", build_number)
            return SourceEvent(url, EventType.PR, {
                "prId": env.get(id_key),
                "prSourceBranch": env.get(source_key),
                "prTargetBranch": env.get(target_key),
                "prLink": env.get(link_key),
            })
    if "GIT_BRANCH" in env:
        logger.info("[#%s] Identified git event: PUSH. Extracting branch and commit details", build_number)
        return SourceEvent(url, EventType.PUSH, {
            "branch": env.get("GIT_BRANCH"),
            "commit": env.get("GIT_COMMIT"),
            "prevCommit": env.get("GIT_PREVIOUS_COMMIT"),
        })
    logger.info("[#%s] Unidentified git event", build_number)
    return SourceEvent(url, EventType.OTHER)


def extract_change_logs_for_run(build_number: int, run: ChangeSetRun) -> List[ChangeLogEntry]:
    """Flatten the run's change-log sets into one ordered list of entries."""
    logger.info("[#%s] Collecting change log set for run : %s", build_number, run.number)
    entries: List[ChangeLogEntry] = []
    for change_set in run.get_change_sets():
        entries.extend(change_set)
    return entries


def collect_change_log(run: ChangeSetRun) -> List[ChangeLogEntry]:
    """Return the change log to report for the run.

    A failing run reports every entry from itself back to the last successful run,
    both inclusive, newest run first. Without any earlier success the list is empty.
    A successful run reports only its own entries.
    """
    if run.result != BuildResult.FAILURE:
        logger.info("[#%s] Current build is a success, collect change logs of current build", run.number)
        return extract_change_logs_for_run(run.number, run)

    logger.info("[#%s] Current build is a failure, collect all change logs till last successful build", run.number)
    previous_success = run.get_previous_successful_build()
    if previous_success is None:
        return []
    logger.info("[#%s] Previous successful build : %s", run.number, previous_success.number)

    cumulative: List[ChangeLogEntry] = []
    r = run
    while r is not None and r.number >= previous_success.number:
        # history walk may yield runs without change-set access
        if isinstance(r, ChangeSetRun):
            cumulative.extend(extract_change_logs_for_run(run.number, r))
        r = r.get_previous_build()
    return cumulative


def build_payload(run: BuildRun, now_ms: Optional[int] = None) -> Payload:
    """Build the full notification payload for a completed run."""
    if now_ms is None:
        now_ms = current_time_ms()
    job = build_job_details(run, now_ms)
    source = classify_source(run.get_environment(), run.number)
    if isinstance(run, ChangeSetRun):
        source.change_log = collect_change_log(run)
    return Payload(job, source)
