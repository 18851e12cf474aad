"""
Company & blueprint catalog endpoints.

    POST /api/v1/companies                           register a company (seeds the essential board)
    GET  /api/v1/companies/<company_id>              company details
    GET  /api/v1/companies/<company_id>/overview     progress, metrics, top tasks, unread count
    GET  /api/v1/blueprints                          registered blueprint versions
    GET  /api/v1/blueprints/<version>                phases and task templates of one version
"""

import logging

from flask import Blueprint, jsonify, request

import checklist_platform.services.checklist_service as svc
from checklist_platform.blueprints import json_body, register_error_handlers
from checklist_platform.services.checklist_blueprint import default_registry
from checklist_platform.utils.errors import E, api_error
from checklist_platform.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

company_bp = Blueprint("company", __name__, url_prefix="/api/v1")
register_error_handlers(company_bp)


@company_bp.route("/companies", methods=["POST"])
def create_company():
    """
    Body: {name, cnpj?, regime?, sector?, seed_blueprint? (default true), reference_date?}
    Returns: company dict (201).
    """
    data = json_body()
    if not (data.get("name") or "").strip():
        return api_error(E.VALIDATION_REQUIRED, "name is required")
    try:
        reference_date = parse_date_input(data.get("reference_date"))
    except ValueError as exc:
        return api_error(E.VALIDATION_INVALID, str(exc), details={"reference_date": data.get("reference_date")})

    company = svc.create_company(
        data,
        seed_blueprint=bool(data.get("seed_blueprint", True)),
        reference_date=reference_date,
    )
    return jsonify(company), 201


@company_bp.route("/companies/<company_id>", methods=["GET"])
def get_company(company_id):
    return jsonify(svc.get_company(company_id)), 200


@company_bp.route("/companies/<company_id>/overview", methods=["GET"])
def company_overview(company_id):
    top = request.args.get("top", 5, type=int)
    return jsonify(svc.company_overview(company_id, top=max(1, min(top, 50)))), 200


@company_bp.route("/blueprints", methods=["GET"])
def list_blueprints():
    registry = default_registry()
    items = []
    for version in registry.versions():
        blueprint = registry.get_blueprint(version)
        items.append({
            "version": version,
            "default": version == registry.default_version,
            "phase_count": len(blueprint.phases),
            "task_count": sum(len(p.tasks) for p in blueprint.phases),
        })
    return jsonify({"items": items, "total": len(items)}), 200


@company_bp.route("/blueprints/<version>", methods=["GET"])
def get_blueprint(version):
    blueprint = default_registry().get_blueprint(version)
    if blueprint is None:
        return api_error(E.NOT_FOUND, f"Blueprint {version} not found")
    return jsonify(blueprint.to_dict()), 200
