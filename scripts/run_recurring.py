"""Run the daily recurring-task job once. Meant for system cron, e.g.

    0 0 * * * cd /srv/taskmanager && python scripts/run_recurring.py
"""
from __future__ import annotations

import importlib
import json
import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dotenv import load_dotenv

from taskmanager_pro.config import get_settings_module
from taskmanager_pro.container import build_container
from taskmanager_pro.logging_setup import setup_logging


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    setup_logging(level=getattr(settings, "LOG_LEVEL", "INFO"), log_dir=getattr(settings, "LOG_DIR", None))

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        retries=getattr(settings, "DB_CONNECT_RETRIES", 3),
        retry_seconds=getattr(settings, "DB_CONNECT_RETRY_SECONDS", 5.0),
        horizon_days=getattr(settings, "RECURRING_HORIZON_DAYS", 7),
    )
    result = container.recurring_service.run_daily()
    print(json.dumps(result.to_dict()))
    return 1 if result.errors else 0


if __name__ == "__main__":
    sys.exit(main())
