"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from .enums import RecurrencePattern

MONTHS_PER_CYCLE = {
    RecurrencePattern.MONTHLY: 1,
    RecurrencePattern.QUARTERLY: 3,
    RecurrencePattern.HALF_YEARLY: 6,
    RecurrencePattern.YEARLY: 12,
}

PATTERN_DESCRIPTIONS = {
    RecurrencePattern.MONTHLY: "Every month",
    RecurrencePattern.QUARTERLY: "Every 3 months",
    RecurrencePattern.HALF_YEARLY: "Every 6 months",
    RecurrencePattern.YEARLY: "Every year",
}

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000
DEFAULT_TASK_LIST_LIMIT = 500
DEFAULT_VISIT_RETRY_ATTEMPTS = 1
