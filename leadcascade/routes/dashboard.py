"""
Dashboard routes — health check and SLA reporting API for dashboard polling.
"""
import logging
from flask import Blueprint, request, jsonify

from leadcascade.routes.helpers import error_response, parse_datetime
from leadcascade.services import metrics

logger = logging.getLogger('routes.dashboard')

bp = Blueprint('dashboard', __name__)


def _period():
    return (
        parse_datetime(request.args.get('start'), 'start'),
        parse_datetime(request.args.get('end'), 'end'),
    )


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/sla/metrics')
def sla_metrics():
    try:
        start, end = _period()
        return jsonify(metrics.metrics(start, end)), 200
    except Exception as e:
        return error_response(e)


@bp.route('/api/sla/active-assignments')
def active_assignments():
    """Active entries with remaining hours + urgency, most urgent first."""
    try:
        return jsonify(metrics.active_assignments()), 200
    except Exception as e:
        return error_response(e)


@bp.route('/api/sla/user-ranking')
def user_ranking():
    try:
        start, end = _period()
        return jsonify(metrics.user_ranking(start, end)), 200
    except Exception as e:
        return error_response(e)


@bp.route('/api/sla/clients/<int:cliente_id>/history')
def cascade_history(cliente_id):
    try:
        return jsonify(metrics.cascade_history(cliente_id)), 200
    except Exception as e:
        return error_response(e)


@bp.route('/api/sla/trends')
def trends():
    try:
        start, end = _period()
        group_by = request.args.get('group_by', 'day')
        return jsonify(metrics.trends(start, end, group_by)), 200
    except Exception as e:
        return error_response(e)


@bp.route('/api/sla/stuck')
def stuck():
    try:
        return jsonify(metrics.stuck_leads()), 200
    except Exception as e:
        return error_response(e)
