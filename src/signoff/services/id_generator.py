"""Prefixed ID generation utility."""

import uuid

PROCESS_PREFIX = "aproc_"
STEP_PREFIX = "astep_"
RESPONSIBILITY_PREFIX = "aresp_"
REQUEST_PREFIX = "areq_"
LOG_PREFIX = "alog_"
COMMENT_PREFIX = "acmt_"


def generate_id(prefix: str) -> str:
    """Generate a prefixed unique ID.

    Args:
        prefix: The prefix (e.g., "aproc_", "areq_").

    Returns:
        A string like "areq_a1b2c3d4e5f6a7b8".
    """
    short_uuid = uuid.uuid4().hex[:16]
    return f"{prefix}{short_uuid}"
