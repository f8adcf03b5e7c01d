"""
Cascade orchestrator — entry point for starting a cascade on lead creation,
and the convergence call exposed to the booking workflow.

LEAD CREATED → sequence-1 entry for the first consultant in the queue
APPOINTMENT BOOKED → finalize_all() closes every open entry for the client
"""
import logging

from sqlalchemy.exc import IntegrityError

from leadcascade.database import get_session
from leadcascade.exceptions import ConfigurationError
from leadcascade.models.responsibility_change import SOURCE_CASCADE_START
from leadcascade.services import ledger, responsibility
from leadcascade.services.config_store import load_active_config
from leadcascade.services.convergence import finalize_all
from leadcascade.services.sla import as_utc, utcnow

logger = logging.getLogger('services.orchestrator')

__all__ = ['start_cascade', 'finalize_all', 'ordered_queue']


def ordered_queue(session, config):
    """
    The queue a new cascade snapshots, first consultant at index 0.

    volume / performance: the configured order.
    round-robin: rotated to start after whoever received the latest sequence-1 entry.
    """
    queue = list(config.queue or [])
    if config.distribution_method != 'round-robin' or not queue:
        return queue

    last = ledger.latest_first_entry(session)
    if last is None or last.consultant_id not in queue:
        return queue
    start = (queue.index(last.consultant_id) + 1) % len(queue)
    return queue[start:] + queue[:start]


def start_cascade(lead_id, cliente_id, now=None):
    """
    Seed the sequence-1 entry for a new lead's client.

    Soft no-ops (logged, returns None): missing cliente_id, no active config,
    empty queue. Idempotent: an existing sequence-1 entry for the client is
    returned instead of creating a duplicate.

    Returns the entry as a dict.
    """
    if cliente_id is None:
        logger.warning("Lead %s has no cliente_id — cascade not started", lead_id)
        return None

    now = as_utc(now) if now else utcnow()

    session = get_session()
    try:
        existing = ledger.first_entry(session, cliente_id)
        if existing is not None:
            logger.info("Cascade already started for client %s (entry %d)", cliente_id, existing.id)
            return existing.to_dict()

        config = load_active_config(session)
        if config is None:
            logger.info("No active cascade config — lead %s not distributed", lead_id)
            return None

        queue = ordered_queue(session, config)
        if not queue:
            logger.warning("Active cascade config %d has an empty queue — lead %s not distributed",
                           config.id, lead_id)
            return None
        if not config.sla_hours_per_step or config.sla_hours_per_step <= 0:
            raise ConfigurationError(
                f"Cascade config {config.id} has non-positive sla_hours_per_step={config.sla_hours_per_step}"
            )

        entry = ledger.create_entry(
            session,
            lead_id=lead_id,
            cliente_id=cliente_id,
            consultant_id=queue[0],
            sequence=1,
            sla_hours=config.sla_hours_per_step,
            started_at=now,
            queue_snapshot=queue,
            config_id=config.id,
        )
        change = responsibility.record_change(
            session, cliente_id, queue[0], SOURCE_CASCADE_START, entry_id=entry.id,
        )
        session.commit()
        payload = entry.to_dict()
        change_payload = change.to_dict()

    except IntegrityError:
        # Concurrent start for the same client won the (cliente_id, sequence) slot
        session.rollback()
        existing = ledger.first_entry(session, cliente_id)
        logger.info("Concurrent cascade start for client %s, keeping existing entry", cliente_id)
        return existing.to_dict() if existing else None
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    logger.info("Cascade started for client %s (lead %s): consultant %s, sla=%dh, expires %s",
                cliente_id, lead_id, payload['consultant_id'], payload['sla_hours'], payload['expires_at'])
    responsibility.publish(change_payload)
    return payload
