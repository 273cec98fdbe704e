from __future__ import annotations

import logging
import traceback
from typing import Any, Optional

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError, ValidationError

logger = logging.getLogger(__name__)


def json_body() -> dict:
    """Request JSON object, or an empty dict for a missing body."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def error_response(message: str, status: int, *, details: Optional[Any] = None, stack: Optional[str] = None):
    error: dict = {"message": message}
    if details is not None:
        error["details"] = details
    if stack is not None:
        error["stack"] = stack
    return jsonify({"success": False, "error": error}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return error_response(e.message, e.status_code, details=e.details)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return error_response(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.error(
            "Error occurred: %s %s: %s\n%s",
            request.method,
            request.path,
            e,
            traceback.format_exc(),
        )
        stack = traceback.format_exc() if current_app.config.get("DEBUG") else None
        return error_response("Server error", 500, stack=stack)
