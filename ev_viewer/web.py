"""Small request/response helpers shared by the blueprints."""
import logging

from flask import abort, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .db import db

logger = logging.getLogger(__name__)


def request_data():
    """Form fields or a JSON body, whichever the client sent."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def json_error(message, status=400):
    return jsonify({'success': False, 'error': message}), status


def invalid(exc):
    logger.warning('Rejected %s %s: %s', request.method, request.path, exc)
    return json_error(str(exc), 400)


def commit_or_error(action):
    """Commit the session; on failure roll back and return an error response."""
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error trying to %s', action)
        return json_error(f'Failed to {action}', 500)
    return None


def get_or_404(model, ident):
    obj = db.session.get(model, ident)
    if obj is None:
        abort(404)
    return obj
