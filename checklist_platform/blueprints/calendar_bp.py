"""
Task calendar endpoints.

    GET /api/v1/companies/<company_id>/calendar/month?date=YYYY-MM-DD
    GET /api/v1/companies/<company_id>/calendar/agenda?date=YYYY-MM-DD

``date`` selects the month (defaults to today).
"""

import logging

from flask import Blueprint, jsonify, request

import checklist_platform.services.checklist_service as svc
from checklist_platform.blueprints import register_error_handlers
from checklist_platform.utils.errors import E, api_error
from checklist_platform.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

calendar_bp = Blueprint("calendar", __name__, url_prefix="/api/v1/companies/<company_id>/calendar")
register_error_handlers(calendar_bp)


def _base_date():
    return parse_date_input(request.args.get("date"))


@calendar_bp.route("/month", methods=["GET"])
def month(company_id):
    try:
        base = _base_date()
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc))
    return jsonify(svc.calendar_month(company_id, base)), 200


@calendar_bp.route("/agenda", methods=["GET"])
def agenda(company_id):
    try:
        base = _base_date()
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc))
    return jsonify(svc.calendar_agenda(company_id, base)), 200
