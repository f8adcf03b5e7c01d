"""
Admin routes — cascade configuration CRUD.
"""
import logging
from flask import Blueprint, request, jsonify

from leadcascade.routes.helpers import error_response
from leadcascade.services import config_store

logger = logging.getLogger('routes.admin')

bp = Blueprint('admin', __name__, url_prefix='/api/cascade/config')


@bp.route('', methods=['GET'])
def get_config():
    """Active config plus every stored config."""
    try:
        return jsonify({
            'active': config_store.get_active_config(),
            'configs': config_store.list_configs(),
        }), 200
    except Exception as e:
        return error_response(e)


@bp.route('', methods=['POST'])
def create_config():
    try:
        config = config_store.create_config(request.get_json(silent=True))
        return jsonify(config), 201
    except Exception as e:
        return error_response(e)


@bp.route('/<int:config_id>', methods=['PUT'])
def update_config(config_id):
    try:
        config = config_store.update_config(config_id, request.get_json(silent=True))
        return jsonify(config), 200
    except Exception as e:
        return error_response(e)


@bp.route('/<int:config_id>/activate', methods=['POST'])
def activate_config(config_id):
    try:
        return jsonify(config_store.activate_config(config_id)), 200
    except Exception as e:
        return error_response(e)


@bp.route('/<int:config_id>/deactivate', methods=['POST'])
def deactivate_config(config_id):
    try:
        return jsonify(config_store.deactivate_config(config_id)), 200
    except Exception as e:
        return error_response(e)
