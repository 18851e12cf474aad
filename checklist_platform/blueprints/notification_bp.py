"""
Checklist notification feed endpoints.

    GET  /api/v1/companies/<company_id>/notifications                      feed (?unread=1)
    POST /api/v1/companies/<company_id>/notifications/sync                 rebuild from task state
    POST /api/v1/companies/<company_id>/notifications/<notification_id>/read   body {read?: bool}
    POST /api/v1/companies/<company_id>/notifications/read-all

Notifications are derived from tasks; only the read flag is user state.
"""

import logging

from flask import Blueprint, jsonify, request

import checklist_platform.services.checklist_service as svc
from checklist_platform.blueprints import json_body, register_error_handlers

logger = logging.getLogger(__name__)

notification_bp = Blueprint("notification", __name__, url_prefix="/api/v1/companies/<company_id>/notifications")
register_error_handlers(notification_bp)


@notification_bp.route("", methods=["GET"])
def list_notifications(company_id):
    unread_only = request.args.get("unread", "").lower() in ("1", "true", "yes")
    return jsonify(svc.list_notifications(company_id, unread_only=unread_only)), 200


@notification_bp.route("/sync", methods=["POST"])
def sync_notifications(company_id):
    return jsonify(svc.refresh_notifications(company_id)), 200


@notification_bp.route("/read-all", methods=["POST"])
def mark_all_read(company_id):
    return jsonify(svc.mark_all_notifications_read(company_id)), 200


@notification_bp.route("/<notification_id>/read", methods=["POST"])
def mark_read(company_id, notification_id):
    read = json_body().get("read", True)
    return jsonify(svc.mark_notification_read(company_id, notification_id, read=bool(read))), 200
