"""
Cascade routes — start / finalize / sweep and per-consultant, per-client views.
"""
import logging
from flask import Blueprint, request, jsonify

from leadcascade.routes.helpers import error_response, parse_int
from leadcascade.services import escalation, metrics, orchestrator, responsibility, scheduler

logger = logging.getLogger('routes.cascade')

bp = Blueprint('cascade', __name__, url_prefix='/api/cascade')


@bp.route('/start', methods=['POST'])
def start():
    """Start a cascade for a new lead. A missing cliente_id is a soft no-op."""
    try:
        data = request.get_json(silent=True) or {}
        lead_id = parse_int(data.get('lead_id'), 'lead_id', required=False)
        cliente_id = parse_int(data.get('cliente_id'), 'cliente_id', required=False)

        entry = orchestrator.start_cascade(lead_id, cliente_id)
        return jsonify({'started': entry is not None, 'entry': entry}), 200

    except Exception as e:
        return error_response(e)


@bp.route('/finalize', methods=['POST'])
def finalize():
    """Close every Active entry for a client (appointment booked)."""
    try:
        data = request.get_json(silent=True) or {}
        cliente_id = parse_int(data.get('cliente_id'), 'cliente_id')
        consultant_id = parse_int(data.get('consultant_id'), 'consultant_id')
        reason = data.get('reason') or None

        kwargs = {'reason': reason} if reason else {}
        finalized = orchestrator.finalize_all(cliente_id, consultant_id, **kwargs)
        return jsonify({'cliente_id': cliente_id, 'finalized': finalized}), 200

    except Exception as e:
        return error_response(e)


@bp.route('/sweep', methods=['POST'])
def run_sweep():
    """Run an escalation sweep now, or enqueue one with ?async=1."""
    try:
        if request.args.get('async') in ('1', 'true'):
            job_id = scheduler.enqueue_sweep()
            return jsonify({'queued': True, 'job_id': job_id}), 202

        result = escalation.sweep()
        return jsonify(result.to_dict()), 200

    except Exception as e:
        return error_response(e)


@bp.route('/consultants/<int:consultant_id>/assignments')
def consultant_assignments(consultant_id):
    try:
        return jsonify(metrics.consultant_assignments(consultant_id)), 200
    except Exception as e:
        return error_response(e)


@bp.route('/clients/<int:cliente_id>/responsible')
def current_responsible(cliente_id):
    try:
        current = responsibility.current_responsible(cliente_id)
        return jsonify({
            'cliente_id': cliente_id,
            'current': current,
            'history': responsibility.responsibility_history(cliente_id),
        }), 200
    except Exception as e:
        return error_response(e)


@bp.route('/clients/<int:cliente_id>/reassign', methods=['POST'])
def reassign(cliente_id):
    """Manual reassignment. Refused with 400 while a cascade is open."""
    try:
        data = request.get_json(silent=True) or {}
        consultant_id = parse_int(data.get('consultant_id'), 'consultant_id')
        actor_id = parse_int(data.get('actor_id'), 'actor_id', required=False)

        change = responsibility.record_manual_reassignment(cliente_id, consultant_id, actor_id=actor_id)
        return jsonify(change), 200

    except Exception as e:
        return error_response(e)
