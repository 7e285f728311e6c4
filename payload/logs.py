"""
Log extraction: turn a run's accumulated console text into a list of lines.
"""
import logging
from typing import List

logger = logging.getLogger(__name__)


def split_lines(text: str) -> List[str]:
    """Split on '\\n' dropping trailing empty strings.

    Text without any newline is returned as a single element, so '' yields [''].
    """
    if '\n' not in text:
        return [text]
    lines = text.split('\n')
    while lines and lines[-1] == '':
        lines.pop()
    return lines


def extract_run_logs(build_number: int, log_text: str) -> List[str]:
    """Return every line of the console text, in order. No filtering or truncation is applied."""
    lines = split_lines(log_text or '')
    logger.info("[#%s] Total log lines captured : %d", build_number, len(lines))
    return lines
