"""
Escalation sweep — expire overdue Active entries and hand each lead to the
next consultant in its snapshotted queue, with the SLA hours of the active
config.

Each overdue row is processed in its own transaction:

  claim (Active → Expired, conditional) → FinalizedSuccess re-check →
  successor insert (sequence + 1) → responsibility change → commit

A claim that matches no row means another worker or a convergence got there
first; the row is skipped. A failure on one row is rolled back and logged and
the row is picked up again on the next tick.
"""
import logging
from dataclasses import dataclass, asdict

from leadcascade.database import get_session
from leadcascade.exceptions import ConcurrencyNoOp
from leadcascade.models.cascade_config import CascadeConfig
from leadcascade.models.cascade_entry import CascadeEntry
from leadcascade.models.responsibility_change import SOURCE_CASCADE_ESCALATION
from leadcascade.services import ledger, notifications, responsibility
from leadcascade.services.config_store import load_active_config
from leadcascade.services.sla import as_utc, utcnow

logger = logging.getLogger('services.escalation')

# Per-row outcomes
ESCALATED = 'escalated'
STUCK = 'stuck'
EXPIRED_ONLY = 'expired'
SKIPPED = 'skipped'
FROZEN = 'frozen'


@dataclass
class SweepResult:
    examined: int = 0
    expired: int = 0
    escalated: int = 0
    stuck: int = 0
    skipped: int = 0
    frozen: int = 0
    errors: int = 0

    def to_dict(self):
        return asdict(self)


def _is_frozen(session, entry):
    if entry.config_id is None:
        return False
    config = session.get(CascadeConfig, entry.config_id)
    return bool(config and not config.active and config.freeze_when_inactive)


def escalate_entry(entry_id, now):
    """
    Expire one overdue entry and seed its successor.

    Returns one of ESCALATED, STUCK, EXPIRED_ONLY, SKIPPED, FROZEN.
    Database errors propagate after rollback.
    """
    now = as_utc(now)
    stuck_payload = None
    change_payload = None

    session = get_session()
    try:
        entry = session.get(CascadeEntry, entry_id)
        if entry is None:
            return SKIPPED
        if _is_frozen(session, entry):
            logger.debug("Entry %d frozen (config %d inactive)", entry_id, entry.config_id)
            return FROZEN

        try:
            ledger.claim_expired(session, entry_id, now)
        except ConcurrencyNoOp:
            session.rollback()
            logger.info("Entry %d already moved by another worker, skipping", entry_id)
            return SKIPPED

        cliente_id = entry.cliente_id
        if ledger.has_success(session, cliente_id):
            session.commit()
            logger.info("Client %s already converted — entry %d expired without successor",
                        cliente_id, entry_id)
            return EXPIRED_ONLY

        next_id = ledger.next_consultant(entry)
        if next_id is None:
            session.commit()
            stuck_payload = {
                'cliente_id': cliente_id,
                'lead_id': entry.lead_id,
                'entry_id': entry_id,
                'consultant_id': entry.consultant_id,
                'sequence': entry.sequence,
                'queue': list(entry.queue_snapshot or []),
            }
            outcome = STUCK
        else:
            config = load_active_config(session)
            if config is not None and config.sla_hours_per_step and config.sla_hours_per_step > 0:
                sla_hours = config.sla_hours_per_step
            else:
                sla_hours = entry.sla_hours
            successor = ledger.create_entry(
                session,
                lead_id=entry.lead_id,
                cliente_id=cliente_id,
                consultant_id=next_id,
                sequence=entry.sequence + 1,
                sla_hours=sla_hours,
                started_at=now,
                queue_snapshot=entry.queue_snapshot,
                config_id=entry.config_id,
            )
            change = responsibility.record_change(
                session, cliente_id, next_id, SOURCE_CASCADE_ESCALATION, entry_id=successor.id,
            )
            session.commit()
            change_payload = change.to_dict()
            logger.info("Client %s escalated: consultant %s → %s (sequence %d)",
                        cliente_id, entry.consultant_id, next_id, entry.sequence + 1)
            outcome = ESCALATED
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if change_payload:
        responsibility.publish(change_payload)
    if stuck_payload:
        logger.warning("Client %s stuck: queue exhausted after sequence %d",
                       stuck_payload['cliente_id'], stuck_payload['sequence'])
        notifications.notify_stuck_lead(stuck_payload)
    return outcome


def sweep(now=None):
    """Process every Active entry whose expires_at is at or before now."""
    now = as_utc(now) if now else utcnow()
    result = SweepResult()

    session = get_session()
    try:
        overdue_ids = [e.id for e in ledger.select_overdue(session, now)]
    finally:
        session.close()

    result.examined = len(overdue_ids)

    for entry_id in overdue_ids:
        try:
            outcome = escalate_entry(entry_id, now)
        except Exception:
            result.errors += 1
            logger.error("Escalation failed for entry %d, will retry next sweep", entry_id, exc_info=True)
            continue

        if outcome in (ESCALATED, STUCK, EXPIRED_ONLY):
            result.expired += 1
        if outcome == ESCALATED:
            result.escalated += 1
        elif outcome == STUCK:
            result.stuck += 1
        elif outcome == SKIPPED:
            result.skipped += 1
        elif outcome == FROZEN:
            result.frozen += 1

    if result.examined:
        logger.info("Sweep at %s: %s", now.isoformat(), result.to_dict())
    return result
