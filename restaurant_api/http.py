import logging

from flask import jsonify
from sqlalchemy.exc import InterfaceError, OperationalError

from .errors import ServiceError, StoreUnavailable
from .extensions import db

logger = logging.getLogger(__name__)


def jerror(status: int, code: str, message: str, details=None):
    payload = {"code": code, "message": message}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(e: ServiceError):
        if isinstance(e, StoreUnavailable):
            db.session.rollback()
        return jerror(e.status, e.code, e.message, e.details)

    @app.errorhandler(OperationalError)
    @app.errorhandler(InterfaceError)
    def handle_store_down(e):
        logger.exception("Database unavailable")
        db.session.rollback()
        return jerror(StoreUnavailable.status, StoreUnavailable.code, "The reservation store is unavailable.")


def validation_details(e) -> list:
    """pydantic errors reduced to JSON-safe fields."""
    return e.errors(include_url=False, include_context=False, include_input=False)
