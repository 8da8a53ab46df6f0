"""Shared blueprint / service helpers.

get_or_404:          tuple-return lookup, ``(obj, None)`` or ``(None, error_response)``
db_commit_or_error:  commit the request transaction, JSON error tuple on failure
parse_bool:          JSON / query-string flag coercion
coerce_str_list:     clean a list of free-text items (steps, tags)
"""
import logging

from flask import jsonify
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from qa_dashboard.models import db

logger = logging.getLogger(__name__)

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


def get_or_404(model, pk, label=None):
    """Look up ``model`` by primary key.

    Usage:
        bug, err = get_or_404(Bug, bug_id)
        if err:
            return err

    The 404 body is ``{"error": "<label> not found"}``; label defaults to the
    model class name.
    """
    obj = db.session.get(model, pk)
    if obj is None:
        return None, (jsonify({"error": f"{label or model.__name__} not found"}), 404)
    return obj, None


def db_commit_or_error():
    """Commit, or roll back and return a ready-to-return error tuple.

    Constraint violations map to 409, connection / lock problems and any
    other database failure to 500. Returns None when the commit succeeded.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Commit rejected by constraint: %s", exc.orig)
        return jsonify({"error": "Duplicate or constraint violation"}), 409
    except OperationalError:
        db.session.rollback()
        logger.exception("Database unavailable during commit")
        return jsonify({"error": "Database error"}), 500
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Commit failed")
        return jsonify({"error": "Database error"}), 500
    return None


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_STRINGS


def coerce_str_list(values):
    """Strip every item, dropping None and blanks; order is kept."""
    return [
        text for text in (str(v).strip() for v in (values or []) if v is not None)
        if text
    ]
