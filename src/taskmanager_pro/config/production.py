import os

from ..core.constants import DEFAULT_RECURRING_RUN_HOUR, DEFAULT_SESSION_DAYS, DEFAULT_UPCOMING_DAYS

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "taskmanager_pro"),
}
DB_CONNECT_RETRIES = int(os.getenv("DB_CONNECT_RETRIES", "5"))
DB_CONNECT_RETRY_SECONDS = float(os.getenv("DB_CONNECT_RETRY_SECONDS", "5"))

DEBUG = False

SESSION_DAYS = int(os.getenv("SESSION_DAYS", DEFAULT_SESSION_DAYS))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "/var/log/taskmanager-pro")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

RECURRING_SCHEDULER_ENABLED = bool(int(os.getenv("RECURRING_SCHEDULER_ENABLED", "1")))
RECURRING_RUN_HOUR = int(os.getenv("RECURRING_RUN_HOUR", DEFAULT_RECURRING_RUN_HOUR))
RECURRING_HORIZON_DAYS = int(os.getenv("RECURRING_HORIZON_DAYS", DEFAULT_UPCOMING_DAYS))
