from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from flask import Flask, jsonify, request, send_file

from ..common.datetime_utils import parse_iso_date, start_of_day
from ..core.exceptions import ValidationError
from ..container import Container
from ..rbac.guards import permission_required, require_actor
from ..rbac.permissions import REPORTS_EXPORT, REPORTS_VIEW
from .service import XLSX_MIMETYPE


def _range_arg(name: str, *, end: bool = False) -> Optional[datetime]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        day = start_of_day(parse_iso_date(raw))
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")
    # end date is inclusive
    return day + timedelta(days=1) if end else day


def register(app: Flask, container: Container) -> None:
    @app.route("/api/reports", methods=["GET"], endpoint="reports")
    @permission_required(REPORTS_VIEW)
    def reports():
        data = container.report_service.build_report(
            require_actor(),
            start=_range_arg("start"),
            end=_range_arg("end", end=True),
        )
        return jsonify(data.to_dict())

    @app.route("/api/reports/export", methods=["GET"], endpoint="export_reports")
    @permission_required(REPORTS_EXPORT)
    def export_reports():
        out = container.report_service.export_tasks_xlsx(
            require_actor(),
            start=_range_arg("start"),
            end=_range_arg("end", end=True),
        )
        return send_file(
            out,
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name="tasks.xlsx",
        )
