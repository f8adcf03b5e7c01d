"""
Cascade configuration store — admin reads/writes of CascadeConfig.

At most one configuration is active: activating a row deactivates every other
row in the same transaction. Changing a configuration never touches
cascade_entries. Open cascades keep their captured queue and each entry keeps its
SLA hours; the next escalation step reads sla_hours_per_step from the active row.
"""
import logging

from sqlalchemy import select, update

from leadcascade.config import (
    CASCADE_DEFAULT_SLA_HOURS, CASCADE_WARNING_PCT, CASCADE_CRITICAL_PCT,
    DISTRIBUTION_METHODS,
)
from leadcascade.database import get_session
from leadcascade.exceptions import ConfigurationError, NotFoundError, ValidationError
from leadcascade.models.cascade_config import CascadeConfig

logger = logging.getLogger('services.config_store')

_FIELDS = (
    'name', 'active', 'distribution_method', 'queue', 'sla_hours_per_step',
    'warning_pct', 'critical_pct', 'freeze_when_inactive',
)


# ── Validation ───────────────────────────────────────────────────────────────

def _as_int(field, value):
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer, got {value!r}")


def _as_bool(field, value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ('true', 'false'):
        return value.lower() == 'true'
    raise ValidationError(f"{field} must be a boolean, got {value!r}")


def validate_config_payload(data, partial=False):
    """
    Validate and normalize an admin payload.

    With partial=True only the keys present are checked (update). Returns the
    cleaned dict restricted to known fields.
    """
    if not isinstance(data, dict):
        raise ValidationError("Configuration payload must be a JSON object")

    unknown = set(data) - set(_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown configuration fields: {sorted(unknown)}")

    clean = {}

    if 'name' in data:
        if not isinstance(data['name'], str) or not data['name'].strip():
            raise ValidationError("name must be a non-empty string")
        clean['name'] = data['name'].strip()

    if 'active' in data:
        clean['active'] = _as_bool('active', data['active'])

    if 'freeze_when_inactive' in data:
        clean['freeze_when_inactive'] = _as_bool('freeze_when_inactive', data['freeze_when_inactive'])

    if 'distribution_method' in data:
        method = data['distribution_method']
        if method not in DISTRIBUTION_METHODS:
            raise ValidationError(
                f"distribution_method must be one of {DISTRIBUTION_METHODS}, got {method!r}"
            )
        clean['distribution_method'] = method

    if 'queue' in data or not partial:
        queue = data.get('queue')
        if queue is None:
            raise ConfigurationError("queue is required")
        if not isinstance(queue, (list, tuple)):
            raise ValidationError("queue must be a list of consultant ids")
        queue = [_as_int('queue', c) for c in queue]
        if not queue:
            raise ConfigurationError("queue must contain at least one consultant")
        if len(set(queue)) != len(queue):
            raise ConfigurationError("queue must not list a consultant twice")
        clean['queue'] = queue

    if 'sla_hours_per_step' in data or not partial:
        sla = _as_int('sla_hours_per_step', data.get('sla_hours_per_step', CASCADE_DEFAULT_SLA_HOURS))
        if sla <= 0:
            raise ConfigurationError(f"sla_hours_per_step must be positive, got {sla}")
        clean['sla_hours_per_step'] = sla

    for field in ('warning_pct', 'critical_pct'):
        if field in data:
            clean[field] = _as_int(field, data[field])

    return clean


def _check_thresholds(warning_pct, critical_pct):
    if not 0 < warning_pct < critical_pct <= 100:
        raise ConfigurationError(
            f"thresholds must satisfy 0 < warning_pct < critical_pct <= 100 "
            f"(got warning={warning_pct}, critical={critical_pct})"
        )


# ── Internal (caller-owned session) ──────────────────────────────────────────

def load_active_config(session):
    """The single active CascadeConfig row, or None."""
    return session.execute(
        select(CascadeConfig)
        .where(CascadeConfig.active.is_(True))
        .order_by(CascadeConfig.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def _deactivate_others(session, keep_id):
    session.execute(
        update(CascadeConfig)
        .where(CascadeConfig.id != keep_id, CascadeConfig.active.is_(True))
        .values(active=False)
        .execution_options(synchronize_session=False)
    )


def _get_or_404(session, config_id):
    config = session.get(CascadeConfig, config_id)
    if config is None:
        raise NotFoundError('CascadeConfig', config_id)
    return config


# ── Public API ───────────────────────────────────────────────────────────────

def get_active_config():
    """Active configuration as a dict, or None when nothing is configured."""
    session = get_session()
    try:
        config = load_active_config(session)
        return config.to_dict() if config else None
    finally:
        session.close()


def get_config(config_id):
    session = get_session()
    try:
        return _get_or_404(session, config_id).to_dict()
    finally:
        session.close()


def list_configs():
    session = get_session()
    try:
        rows = session.execute(select(CascadeConfig).order_by(CascadeConfig.id.asc())).scalars()
        return [c.to_dict() for c in rows]
    finally:
        session.close()


def create_config(data):
    """Create a configuration (active by default, which deactivates the others)."""
    clean = validate_config_payload(data)
    clean.setdefault('name', 'default')
    clean.setdefault('active', True)
    clean.setdefault('distribution_method', 'volume')
    clean.setdefault('warning_pct', CASCADE_WARNING_PCT)
    clean.setdefault('critical_pct', CASCADE_CRITICAL_PCT)
    clean.setdefault('freeze_when_inactive', False)
    _check_thresholds(clean['warning_pct'], clean['critical_pct'])

    session = get_session()
    try:
        config = CascadeConfig(**clean)
        session.add(config)
        session.flush()
        if config.active:
            _deactivate_others(session, config.id)
        session.commit()
        logger.info("Created cascade config %d (queue=%s, sla=%dh, active=%s)",
                    config.id, config.queue, config.sla_hours_per_step, config.active)
        return config.to_dict()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def update_config(config_id, data):
    """Partial update. Open cascades are unaffected: they carry their own snapshot."""
    clean = validate_config_payload(data, partial=True)

    session = get_session()
    try:
        config = _get_or_404(session, config_id)
        for field, value in clean.items():
            setattr(config, field, value)
        _check_thresholds(config.warning_pct, config.critical_pct)
        if config.active:
            _deactivate_others(session, config.id)
        session.commit()
        logger.info("Updated cascade config %d: %s", config_id, sorted(clean))
        return config.to_dict()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def activate_config(config_id):
    return update_config(config_id, {'active': True})


def deactivate_config(config_id):
    return update_config(config_id, {'active': False})
