"""Per-host outcome enumeration."""

from enum import Enum


class HostOutcome(Enum):
    """Result of running one pipeline stage against one host."""

    OK = "ok"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"
