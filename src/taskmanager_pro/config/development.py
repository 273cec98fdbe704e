import os

from ..core.constants import DEFAULT_RECURRING_RUN_HOUR, DEFAULT_SESSION_DAYS, DEFAULT_UPCOMING_DAYS

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "taskmanager_pro"),
}
DB_CONNECT_RETRIES = int(os.getenv("DB_CONNECT_RETRIES", "3"))
DB_CONNECT_RETRY_SECONDS = float(os.getenv("DB_CONNECT_RETRY_SECONDS", "5"))

DEBUG = True

SESSION_DAYS = int(os.getenv("SESSION_DAYS", DEFAULT_SESSION_DAYS))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_DIR = os.getenv("LOG_DIR", ".local/logs")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo users on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

RECURRING_SCHEDULER_ENABLED = bool(int(os.getenv("RECURRING_SCHEDULER_ENABLED", "0")))
RECURRING_RUN_HOUR = int(os.getenv("RECURRING_RUN_HOUR", DEFAULT_RECURRING_RUN_HOUR))
RECURRING_HORIZON_DAYS = int(os.getenv("RECURRING_HORIZON_DAYS", DEFAULT_UPCOMING_DAYS))
