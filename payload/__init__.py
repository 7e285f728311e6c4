"""
Payload package: builds the notification document for a run.
"""

from .builder import build_payload
from .logs import extract_run_logs

__all__ = ["build_payload", "extract_run_logs"]
