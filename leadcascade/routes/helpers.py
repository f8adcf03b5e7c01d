"""
Shared request parsing + error mapping for the JSON API blueprints.
"""
import logging
from datetime import datetime

from flask import jsonify

from leadcascade.exceptions import ConfigurationError, NotFoundError, ValidationError

logger = logging.getLogger('routes.helpers')


def error_response(exc):
    """Map engine exceptions to (json, status)."""
    if isinstance(exc, (ValidationError, ConfigurationError)):
        return jsonify({'error': str(exc)}), 400
    if isinstance(exc, NotFoundError):
        return jsonify({'error': str(exc)}), 404
    logger.error("Unhandled error in API route", exc_info=exc)
    return jsonify({'error': str(exc)}), 500


def parse_int(value, field, required=True):
    if value is None or value == '':
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer, got {value!r}")


def parse_datetime(value, field):
    """ISO-8601 query parameter → datetime (None when absent)."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date or datetime, got {value!r}")
