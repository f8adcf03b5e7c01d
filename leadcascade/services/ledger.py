"""
Cascade ledger — row-level reads and conditional writes on cascade_entries.

Every helper takes the caller's session so the caller owns the transaction.
State transitions are single compare-and-update statements scoped by the
row's current status, never read-then-write.
"""
import logging

from sqlalchemy import select, update, exists

from leadcascade.config import (
    STATUS_ACTIVE, STATUS_EXPIRED, STATUS_FINALIZED_SUCCESS, REASON_SLA_EXPIRED,
)
from leadcascade.exceptions import ConcurrencyNoOp
from leadcascade.models.cascade_entry import CascadeEntry
from leadcascade.services.sla import as_utc, expires_at_for

logger = logging.getLogger('services.ledger')


# ── Inserts ──────────────────────────────────────────────────────────────────

def create_entry(session, *, lead_id, cliente_id, consultant_id, sequence,
                 sla_hours, started_at, queue_snapshot, config_id=None):
    """Add an Active entry and flush so it gets an id (caller commits)."""
    started_at = as_utc(started_at)
    entry = CascadeEntry(
        lead_id=lead_id,
        cliente_id=cliente_id,
        consultant_id=consultant_id,
        sequence=sequence,
        sla_hours=sla_hours,
        started_at=started_at,
        expires_at=expires_at_for(started_at, sla_hours),
        status=STATUS_ACTIVE,
        config_id=config_id,
        queue_snapshot=list(queue_snapshot or []),
    )
    session.add(entry)
    session.flush()
    return entry


# ── Conditional transitions ──────────────────────────────────────────────────

def claim_expired(session, entry_id, now):
    """
    Active → Expired for one row, conditioned on status=Active.

    Raises ConcurrencyNoOp when the row was already moved by someone else.
    """
    result = session.execute(
        update(CascadeEntry)
        .where(CascadeEntry.id == entry_id, CascadeEntry.status == STATUS_ACTIVE)
        .values(
            status=STATUS_EXPIRED,
            finalized_at=as_utc(now),
            finalization_reason=REASON_SLA_EXPIRED,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ConcurrencyNoOp(entry_id, STATUS_EXPIRED)
    return result.rowcount


def finalize_active(session, cliente_id, consultant_id, reason, now):
    """Active → FinalizedSuccess for every Active row of a client. Returns rows affected."""
    result = session.execute(
        update(CascadeEntry)
        .where(CascadeEntry.cliente_id == cliente_id, CascadeEntry.status == STATUS_ACTIVE)
        .values(
            status=STATUS_FINALIZED_SUCCESS,
            finalized_at=as_utc(now),
            finalized_by_consultant_id=consultant_id,
            finalization_reason=reason,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# ── Reads ────────────────────────────────────────────────────────────────────

def has_success(session, cliente_id):
    stmt = select(exists().where(
        CascadeEntry.cliente_id == cliente_id,
        CascadeEntry.status == STATUS_FINALIZED_SUCCESS,
    ))
    return bool(session.execute(stmt).scalar())


def has_active(session, cliente_id):
    stmt = select(exists().where(
        CascadeEntry.cliente_id == cliente_id,
        CascadeEntry.status == STATUS_ACTIVE,
    ))
    return bool(session.execute(stmt).scalar())


def first_entry(session, cliente_id):
    return session.execute(
        select(CascadeEntry).where(
            CascadeEntry.cliente_id == cliente_id,
            CascadeEntry.sequence == 1,
        )
    ).scalar_one_or_none()


def entries_for_client(session, cliente_id):
    return list(session.execute(
        select(CascadeEntry)
        .where(CascadeEntry.cliente_id == cliente_id)
        .order_by(CascadeEntry.sequence.asc())
    ).scalars())


def select_overdue(session, now):
    """Active entries whose expires_at is at or before now, oldest deadline first."""
    return list(session.execute(
        select(CascadeEntry)
        .where(CascadeEntry.status == STATUS_ACTIVE, CascadeEntry.expires_at <= as_utc(now))
        .order_by(CascadeEntry.expires_at.asc(), CascadeEntry.id.asc())
    ).scalars())


def select_active(session, consultant_id=None):
    stmt = select(CascadeEntry).where(CascadeEntry.status == STATUS_ACTIVE)
    if consultant_id is not None:
        stmt = stmt.where(CascadeEntry.consultant_id == consultant_id)
    return list(session.execute(stmt.order_by(CascadeEntry.expires_at.asc())).scalars())


def select_started_between(session, period_start, period_end):
    return list(session.execute(
        select(CascadeEntry)
        .where(
            CascadeEntry.started_at >= as_utc(period_start),
            CascadeEntry.started_at <= as_utc(period_end),
        )
        .order_by(CascadeEntry.started_at.asc(), CascadeEntry.id.asc())
    ).scalars())


def latest_first_entry(session):
    """Most recent sequence-1 entry across all clients (round-robin cursor)."""
    return session.execute(
        select(CascadeEntry)
        .where(CascadeEntry.sequence == 1)
        .order_by(CascadeEntry.id.desc())
        .limit(1)
    ).scalar_one_or_none()


# ── Pure helpers ─────────────────────────────────────────────────────────────

def next_consultant(entry):
    """
    The consultant after this entry in its snapshotted queue, or None.

    queue_snapshot is 0-based, so the entry at sequence n hands over to
    queue_snapshot[n]. The cascade never wraps around.
    """
    queue = entry.queue_snapshot or []
    if entry.sequence < len(queue):
        return queue[entry.sequence]
    return None
