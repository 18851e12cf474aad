"""
Checklist board & task endpoints.

Endpoint groups:
  Boards     GET/POST /api/v1/companies/<company_id>/boards
             GET      /api/v1/companies/<company_id>/boards/<board_id>
  Tasks      POST     /api/v1/companies/<company_id>/boards/<board_id>/tasks
             PATCH    /api/v1/companies/<company_id>/boards/<board_id>/tasks/<task_id>
             PATCH    /api/v1/companies/<company_id>/boards/<board_id>/tasks/<task_id>/status
             DELETE   /api/v1/companies/<company_id>/boards/<board_id>/tasks/<task_id>
  Audits     GET      /api/v1/companies/<company_id>/boards/<board_id>/tasks/<task_id>/audits

Service layer owns all business logic and commits. The acting user is read
from the X-Actor-Id / X-Actor-Name headers and recorded on audits.
"""

import logging

from flask import Blueprint, jsonify

import checklist_platform.services.checklist_service as svc
from checklist_platform.blueprints import json_body, register_error_handlers, request_actor
from checklist_platform.utils.errors import E, api_error

logger = logging.getLogger(__name__)

checklist_bp = Blueprint("checklist", __name__, url_prefix="/api/v1/companies/<company_id>/boards")
register_error_handlers(checklist_bp)


# ═════════════════════════════════════════════════════════════════════════
# Boards
# ═════════════════════════════════════════════════════════════════════════


@checklist_bp.route("", methods=["GET"])
def list_boards(company_id):
    items = svc.list_boards(company_id)
    return jsonify({"items": items, "total": len(items)}), 200


@checklist_bp.route("", methods=["POST"])
def create_board(company_id):
    """
    Instantiate a blueprint into a new board.

    Body: {name?, reference_date?, version?}
    Returns: board with tasks (201).
    """
    data = json_body()
    board = svc.create_board_from_blueprint(
        company_id,
        name=data.get("name"),
        reference_date=data.get("reference_date"),
        version=data.get("version"),
    )
    return jsonify(board), 201


@checklist_bp.route("/<board_id>", methods=["GET"])
def get_board(company_id, board_id):
    """Board with tasks in priority order, kanban columns, progress and metrics."""
    return jsonify(svc.get_board(company_id, board_id)), 200


# ═════════════════════════════════════════════════════════════════════════
# Tasks
# ═════════════════════════════════════════════════════════════════════════


@checklist_bp.route("/<board_id>/tasks", methods=["POST"])
def create_task(company_id, board_id):
    data = json_body()
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        return api_error(E.VALIDATION_REQUIRED, "title is required")
    task = svc.add_task(company_id, board_id, data, actor=request_actor())
    return jsonify(task), 201


@checklist_bp.route("/<board_id>/tasks/<task_id>", methods=["PATCH"])
def update_task(company_id, board_id, task_id):
    data = json_body()
    if not data:
        return api_error(E.VALIDATION_REQUIRED, "Request body is empty")
    task = svc.update_task(company_id, board_id, task_id, data, actor=request_actor())
    return jsonify(task), 200


@checklist_bp.route("/<board_id>/tasks/<task_id>/status", methods=["PATCH"])
def update_task_status(company_id, board_id, task_id):
    """Body: {status: todo | doing | done}"""
    status = json_body().get("status")
    if not status:
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    task = svc.update_task_status(company_id, board_id, task_id, status, actor=request_actor())
    return jsonify(task), 200


@checklist_bp.route("/<board_id>/tasks/<task_id>", methods=["DELETE"])
def delete_task(company_id, board_id, task_id):
    svc.delete_task(company_id, board_id, task_id, actor=request_actor())
    return jsonify({"deleted": True, "id": task_id}), 200


@checklist_bp.route("/<board_id>/tasks/<task_id>/audits", methods=["GET"])
def list_task_audits(company_id, board_id, task_id):
    items = svc.list_task_audits(company_id, board_id, task_id)
    return jsonify({"items": items, "total": len(items)}), 200
