"""
Retry/backoff helper for reads against the Jenkins remote API.
The notification POST to CloudAEye never goes through here: it is sent exactly once.
"""

import os
import time
import random
import email.utils
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple
import requests

# retry/backoff defaults from environment
DEFAULT_MAX_RETRIES = int(os.getenv("CLOUDAEYE_MAX_RETRIES", "3"))
DEFAULT_BACKOFF_BASE = float(os.getenv("CLOUDAEYE_BACKOFF_BASE", "0.5"))
DEFAULT_MAX_BACKOFF = float(os.getenv("CLOUDAEYE_MAX_BACKOFF", "30.0"))

RETRY_STATUSES = (429, 502, 503, 504)

# runtime-overrides
_runtime_max_retries: Optional[int] = None
_runtime_backoff_base: Optional[float] = None
_runtime_max_backoff: Optional[float] = None


def configure_retry(max_retries: Optional[int] = None, backoff_base: Optional[float] = None, max_backoff: Optional[float] = None):
    """Configure retry/backoff defaults at runtime (e.g. from CLI)."""
    global _runtime_max_retries, _runtime_backoff_base, _runtime_max_backoff
    if max_retries is not None:
        _runtime_max_retries = int(max_retries)
    if backoff_base is not None:
        _runtime_backoff_base = float(backoff_base)
    if max_backoff is not None:
        _runtime_max_backoff = float(max_backoff)


def _parse_retry_after(raw_ra: Optional[str]) -> Optional[float]:
    if not raw_ra:
        return None
    try:
        return max(0.0, float(raw_ra))
    except ValueError:
        pass
    try:
        dt = email.utils.parsedate_to_datetime(raw_ra)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return max(0.0, (dt - datetime.now(timezone.utc)).total_seconds())


def _resolve_params(max_retries: Optional[int], backoff_base: Optional[float], max_backoff: Optional[float]) -> Tuple[int, float, float]:
    if max_retries is None:
        max_retries = _runtime_max_retries if _runtime_max_retries is not None else DEFAULT_MAX_RETRIES
    if backoff_base is None:
        backoff_base = _runtime_backoff_base if _runtime_backoff_base is not None else DEFAULT_BACKOFF_BASE
    if max_backoff is None:
        max_backoff = _runtime_max_backoff if _runtime_max_backoff is not None else DEFAULT_MAX_BACKOFF
    return max(1, int(max_retries)), float(backoff_base), float(max_backoff)


def _compute_wait_seconds(retry_after: Optional[float], backoff: float, max_backoff: float) -> float:
    if retry_after is not None:
        return min(retry_after, max_backoff)
    return min(backoff + random.uniform(0, backoff), max_backoff)


def get_with_retries(
    url: str,
    auth: Optional[Tuple[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    max_retries: Optional[int] = None,
    backoff_base: Optional[float] = None,
    max_backoff: Optional[float] = None,
    timeout: Optional[float] = None,
) -> requests.Response:
    """GET with exponential backoff.

    Network errors and 429/502/503/504 responses are retried up to max_retries attempts in total.
    Any other response is returned as-is; when attempts run out the last response is returned
    or the last network error re-raised.
    """
    attempts, backoff, max_backoff_resolved = _resolve_params(max_retries, backoff_base, max_backoff)
    last_exc: Optional[requests.RequestException] = None
    resp = None
    for attempt in range(attempts):
        if attempt > 0:
            retry_after = _parse_retry_after(resp.headers.get('Retry-After')) if resp is not None else None
            time.sleep(_compute_wait_seconds(retry_after, backoff, max_backoff_resolved))
            backoff = min(backoff * 2, max_backoff_resolved)
        try:
            resp = requests.get(url, auth=auth, headers=headers or {}, params=params or {}, timeout=timeout)
        except requests.RequestException as ex:
            last_exc = ex
            resp = None
            continue
        last_exc = None
        if resp.status_code not in RETRY_STATUSES:
            return resp
    if last_exc is not None:
        raise last_exc
    return resp


__all__ = ["configure_retry", "get_with_retries", "RETRY_STATUSES"]
