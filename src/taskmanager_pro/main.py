from __future__ import annotations

import importlib
import json
import logging
from datetime import datetime, timedelta
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask, g, jsonify, session
from flask.cli import AppGroup

from .common.http import register_error_handlers
from .config import get_settings_module
from .container import Container, build_container
from .core.constants import DEFAULT_RECURRING_RUN_HOUR, DEFAULT_SESSION_DAYS, DEFAULT_UPCOMING_DAYS
from .database.bootstrap import apply_schema, ensure_demo_users, list_tables
from .logging_setup import setup_logging
from .notifications.controller import register as register_notifications
from .rbac.guards import login_required, require_actor
from .rbac.permissions import permissions_for
from .recurring.scheduler import RecurringTaskScheduler
from .reports.controller import register as register_reports
from .tasks.controller import register as register_tasks
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(settings_module: Optional[str] = None, container: Optional[Container] = None) -> Flask:
    """Application factory.

    ``container`` lets tests run the app on in-memory repositories; when it
    is given no database is touched.
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)

    if not getattr(settings, "TESTING", False):
        setup_logging(level=getattr(settings, "LOG_LEVEL", "INFO"), log_dir=getattr(settings, "LOG_DIR", None))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["SESSION_DAYS"] = int(getattr(settings, "SESSION_DAYS", DEFAULT_SESSION_DAYS))
    app.permanent_session_lifetime = timedelta(days=app.config["SESSION_DAYS"])

    db_config = getattr(settings, "DB_CONFIG")
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            ensure_demo_users(db_config)

        container = build_container(
            db_config=db_config,
            retries=getattr(settings, "DB_CONNECT_RETRIES", 3),
            retry_seconds=getattr(settings, "DB_CONNECT_RETRY_SECONDS", 5.0),
            horizon_days=getattr(settings, "RECURRING_HORIZON_DAYS", DEFAULT_UPCOMING_DAYS),
        )

    app.extensions["container"] = container

    @app.before_request
    def load_actor():
        g.actor = None
        user_id = session.get("user_id")
        if user_id is None:
            return
        actor = container.auth_service.load_actor(int(user_id))
        if actor is None:
            # account was deleted while the session was alive
            session.clear()
            return
        g.actor = actor

    register_error_handlers(app)
    register_users(app, container)
    register_tasks(app, container)
    register_notifications(app, container)
    register_reports(app, container)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok", "timestamp": datetime.now().isoformat()})

    @app.route("/api/debug/roles", methods=["GET"], endpoint="debug_roles")
    @login_required
    def debug_roles():
        actor = require_actor()
        return jsonify(
            {
                "user_id": actor.user_id,
                "role": actor.role.value,
                "permissions": permissions_for(actor.role),
            }
        )

    _register_cli(app, container)

    if getattr(settings, "RECURRING_SCHEDULER_ENABLED", False):
        scheduler = RecurringTaskScheduler(
            container.recurring_service,
            run_hour=getattr(settings, "RECURRING_RUN_HOUR", DEFAULT_RECURRING_RUN_HOUR),
        )
        scheduler.start()
        app.extensions["recurring_scheduler"] = scheduler

    return app


def _register_cli(app: Flask, container: Container) -> None:
    recurring_cli = AppGroup("recurring", help="Recurring task maintenance.")

    @recurring_cli.command("run")
    def run_recurring():
        """Process completed series and generate upcoming instances."""
        result = container.recurring_service.run_daily()
        click.echo(json.dumps(result.to_dict()))
        if result.errors:
            raise SystemExit(1)

    app.cli.add_command(recurring_cli)
