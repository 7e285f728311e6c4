"""
Build-step integration: decides whether a run is exported, builds its payload and sends it.

Failures while assembling the payload are wrapped in PayloadAssemblyError and re-raised.
Failures while delivering it are logged and never reach the calling pipeline.
"""
import logging
from typing import Optional

import requests

from config import NotifierConfig
from ingest.jenkins import JenkinsApiError
from models import BuildResult, Payload
from notify.sender import NotificationSender
from payload.builder import build_payload
from runs.base import BuildRun

logger = logging.getLogger(__name__)


class PayloadAssemblyError(RuntimeError):
    """Raised when the payload of a run cannot be assembled."""

    def __init__(self, build_number: int, cause: Exception):
        super().__init__(f"[#{build_number}] Failed to assemble build details: {cause}")
        self.build_number = build_number


class CloudAEyeNotifier:
    """
    Exports run metadata and logs of finished runs to CloudAEye.
    """
    def __init__(self, config: NotifierConfig, enable_export: bool = True, sender: Optional[NotificationSender] = None):
        self.config = config
        self.enable_export = enable_export
        self.sender = sender or NotificationSender()

    def should_notify(self, run: BuildRun) -> bool:
        if not self.enable_export:
            logger.info("[#%s] Exporting to CloudAEye is not enabled. Skipping export", run.number)
            return False
        if run.result not in BuildResult.NOTIFIABLE:
            logger.info("[#%s] Build status is neither success nor failure. Further processing skipped", run.number)
            return False
        return True

    def assemble(self, run: BuildRun, now_ms: Optional[int] = None) -> Payload:
        try:
            payload = build_payload(run, now_ms)
        except (OSError, requests.RequestException, JenkinsApiError) as ex:
            raise PayloadAssemblyError(run.number, ex) from ex
        logger.info("[#%s] Build details successfully captured", run.number)
        logger.debug("[#%s] Build details : %s", run.number, payload.to_json())
        return payload

    def send(self, build_number: int, payload: Payload) -> bool:
        """Deliver the payload. Returns True only on HTTP 200."""
        try:
            response = self.sender.send(payload.to_json(), self.config.tenant_key, self.config.token)
        except requests.RequestException as ex:
            logger.error("[#%s] Error while trying to send run details to CloudAEye : %s", build_number, ex)
            return False
        if response.status_code == 200:
            logger.info("[#%s] Success response received from CloudAEye endpoint : %s", build_number, response.text)
            return True
        logger.error("[#%s] Error response received from CloudAEye endpoint (%s) : %s", build_number, response.status_code, response.text)
        return False

    def perform(self, run: BuildRun, now_ms: Optional[int] = None, dry_run: bool = False):
        """
        Notify CloudAEye about a finished run.

        Returns None when the run is skipped, the assembled Payload on a dry run,
        otherwise whether delivery succeeded.
        """
        logger.info("Received run notification for run : %s", run.number)
        if not self.should_notify(run):
            return None
        self.config.validate()
        payload = self.assemble(run, now_ms)
        if dry_run:
            return payload
        return self.send(run.number, payload)
