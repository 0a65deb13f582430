"""Status enum for reminder urgency levels."""

from enum import Enum


class Status(Enum):
    """Obligation status categories. Lower value = more urgent."""

    OVERDUE = 1
    DUE_SOON = 2
    OK = 3
    UNKNOWN = 4  # Can't calculate (missing or unparseable data)
