"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 1
DEFAULT_TASK_LIMIT = 500
NOTIFICATION_LIST_LIMIT = 50
PASSWORD_MIN_LENGTH = 6
DEFAULT_UPCOMING_DAYS = 7
MAX_INSTANCES_PER_RUN = 31
DEFAULT_RECURRING_RUN_HOUR = 0
MAX_RECURRING_INTERVAL = 366
