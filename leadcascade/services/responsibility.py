"""
Responsibility ownership — who is the client's currently responsible consultant.

The CRM's client record keeps a "responsible consultant" field, but the
cascade owns that field while a cascade is open. Every write is recorded as a
ResponsibilityChange with its source (cascade_start, cascade_escalation,
manual), and the client layer is told about it through registered listeners
called after commit.

Listener failure never blocks the cascade.
"""
import logging

from sqlalchemy import select

from leadcascade.database import get_session
from leadcascade.exceptions import ValidationError
from leadcascade.models.responsibility_change import (
    ResponsibilityChange, SOURCE_MANUAL,
)
from leadcascade.services import ledger

logger = logging.getLogger('services.responsibility')

_listeners = []


def register_listener(fn):
    """Register fn(change_dict) to be called after each committed change."""
    if fn not in _listeners:
        _listeners.append(fn)
    return fn


def clear_listeners():
    _listeners.clear()


def record_change(session, cliente_id, consultant_id, source, entry_id=None, actor_id=None):
    """Stage a change on the caller's session (caller commits, then publish())."""
    change = ResponsibilityChange(
        cliente_id=cliente_id,
        consultant_id=consultant_id,
        source=source,
        entry_id=entry_id,
        actor_id=actor_id,
    )
    session.add(change)
    return change


def publish(change):
    """Notify listeners of a committed change."""
    payload = change if isinstance(change, dict) else change.to_dict()
    for fn in list(_listeners):
        try:
            fn(payload)
        except Exception:
            logger.error("Responsibility listener %r failed for client %s",
                         fn, payload.get('cliente_id'), exc_info=True)


def record_manual_reassignment(cliente_id, consultant_id, actor_id=None):
    """
    Record a manual reassignment made outside the cascade.

    Refused while the client has an Active cascade entry.
    """
    if cliente_id is None or consultant_id is None:
        raise ValidationError("cliente_id and consultant_id are required")

    session = get_session()
    try:
        if ledger.has_active(session, cliente_id):
            raise ValidationError(
                f"Client {cliente_id} has an open cascade — responsibility is owned by the cascade"
            )
        change = record_change(session, cliente_id, consultant_id, SOURCE_MANUAL, actor_id=actor_id)
        session.commit()
        payload = change.to_dict()
        logger.info("Client %s manually reassigned to consultant %s by %s",
                    cliente_id, consultant_id, actor_id)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    publish(payload)
    return payload


def current_responsible(cliente_id):
    """Latest responsibility change for a client, or None."""
    session = get_session()
    try:
        change = session.execute(
            select(ResponsibilityChange)
            .where(ResponsibilityChange.cliente_id == cliente_id)
            .order_by(ResponsibilityChange.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        return change.to_dict() if change else None
    finally:
        session.close()


def responsibility_history(cliente_id):
    session = get_session()
    try:
        rows = session.execute(
            select(ResponsibilityChange)
            .where(ResponsibilityChange.cliente_id == cliente_id)
            .order_by(ResponsibilityChange.id.asc())
        ).scalars()
        return [c.to_dict() for c in rows]
    finally:
        session.close()
