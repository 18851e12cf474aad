"""
Checklist Platform
Blueprint helpers shared by every API blueprint.
"""

import logging

from flask import request
from sqlalchemy.exc import SQLAlchemyError

from checklist_platform.core.exceptions import ConflictError, NotFoundError, ValidationError
from checklist_platform.models import db
from checklist_platform.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def request_actor():
    """Actor recorded on task audits, taken from X-Actor-Id / X-Actor-Name."""
    actor_id = request.headers.get("X-Actor-Id")
    actor_name = request.headers.get("X-Actor-Name")
    if not actor_id and not actor_name:
        return None
    return {"id": actor_id, "name": actor_name}


def json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def register_error_handlers(bp):
    """Map service exceptions to the standard error envelope for ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        logger.debug("Not found: %s", error)
        return api_error(E.NOT_FOUND, f"{error.resource} not found")

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        db.session.rollback()
        return api_error(E.VALIDATION_RULE, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        db.session.rollback()
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={"field": error.field})

    @bp.errorhandler(SQLAlchemyError)
    def _handle_database(error: SQLAlchemyError):
        db.session.rollback()
        logger.exception("Database error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.DATABASE, "Database error")

    return bp
