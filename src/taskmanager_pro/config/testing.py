import os

from ..core.constants import DEFAULT_RECURRING_RUN_HOUR, DEFAULT_SESSION_DAYS, DEFAULT_UPCOMING_DAYS

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "taskmanager_pro_test"),
}
DB_CONNECT_RETRIES = 1
DB_CONNECT_RETRY_SECONDS = 0

DEBUG = False
TESTING = True

SESSION_DAYS = DEFAULT_SESSION_DAYS

LOG_LEVEL = "WARNING"
LOG_DIR = None

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

RECURRING_SCHEDULER_ENABLED = False
RECURRING_RUN_HOUR = DEFAULT_RECURRING_RUN_HOUR
RECURRING_HORIZON_DAYS = DEFAULT_UPCOMING_DAYS
