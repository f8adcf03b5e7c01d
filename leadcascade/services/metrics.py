"""
Ranking / metrics aggregator — read-only projections of the cascade ledger
for dashboards.

Period filters apply to started_at, inclusive on both ends, defaulting to the
last CASCADE_REPORT_DAYS days. Rates are percentages rounded to 2 places.

Urgency buckets are computed from elapsed time only, so an entry whose ledger
status is still Active can show up as Expirado until the next sweep.
"""
import logging
from collections import defaultdict
from datetime import timedelta

from sqlalchemy import select, func, case

from leadcascade.config import (
    CASCADE_REPORT_DAYS, CASCADE_SWEEP_ON_READ,
    STATUS_ACTIVE, STATUS_EXPIRED, STATUS_FINALIZED_SUCCESS,
)
from leadcascade.database import get_session
from leadcascade.exceptions import NotFoundError, ValidationError
from leadcascade.models.cascade_entry import CascadeEntry
from leadcascade.services import ledger
from leadcascade.services.config_store import load_active_config
from leadcascade.services.sla import (
    URGENCY_BUCKETS, as_utc, consumed_fraction, hours_remaining, status_bucket, utcnow,
)

logger = logging.getLogger('services.metrics')

GROUP_BY_OPTIONS = ('day', 'week', 'month')


# ── Helpers ──────────────────────────────────────────────────────────────────

def resolve_period(period_start=None, period_end=None):
    """Fill in the default window and validate ordering."""
    period_end = as_utc(period_end) if period_end else utcnow()
    if period_start:
        period_start = as_utc(period_start)
    else:
        period_start = period_end - timedelta(days=CASCADE_REPORT_DAYS)
    if period_start > period_end:
        raise ValidationError("period start must not be after period end")
    return period_start, period_end


def _rate(part, total):
    return round(part / total * 100, 2) if total else 0.0


def _status_counts(entries):
    counts = {STATUS_ACTIVE: 0, STATUS_EXPIRED: 0, STATUS_FINALIZED_SUCCESS: 0}
    for e in entries:
        counts[e.status] = counts.get(e.status, 0) + 1
    return counts


def _thresholds(session):
    config = load_active_config(session)
    if config is None:
        return None, None
    return config.warning_pct, config.critical_pct


def _annotate(entries, now, warning_pct, critical_pct):
    """Attach remaining hours and urgency, most urgent first."""
    rows = []
    for e in entries:
        consumed = consumed_fraction(now, e.started_at, e.sla_hours)
        rows.append((consumed, as_utc(e.expires_at), {
            'entry': e.to_dict(),
            'hours_remaining': hours_remaining(now, e.started_at, e.sla_hours),
            'urgency_bucket': status_bucket(now, e.started_at, e.sla_hours, warning_pct, critical_pct),
            'consumed_pct': round(consumed * 100, 2),
        }))
    rows.sort(key=lambda r: (-r[0], r[1]))
    return [r[2] for r in rows]


def _stuck_client_ids(session):
    """Clients with only Expired entries: every consultant in the lineage timed out."""
    not_expired = func.sum(case((CascadeEntry.status != STATUS_EXPIRED, 1), else_=0))
    return set(session.execute(
        select(CascadeEntry.cliente_id)
        .group_by(CascadeEntry.cliente_id)
        .having(not_expired == 0)
    ).scalars())


# ── Projections ──────────────────────────────────────────────────────────────

def metrics(period_start=None, period_end=None):
    """System-wide counts and rates for entries started in the window."""
    period_start, period_end = resolve_period(period_start, period_end)

    session = get_session()
    try:
        entries = ledger.select_started_between(session, period_start, period_end)
        stuck_ids = _stuck_client_ids(session)
    finally:
        session.close()

    total = len(entries)
    counts = _status_counts(entries)
    per_consultant = defaultdict(int)
    for e in entries:
        per_consultant[e.consultant_id] += 1
    window_clients = {e.cliente_id for e in entries}

    return {
        'period': {'start': period_start.isoformat(), 'end': period_end.isoformat()},
        'total_assignments': total,
        'finalized_success': counts[STATUS_FINALIZED_SUCCESS],
        'expired': counts[STATUS_EXPIRED],
        'active': counts[STATUS_ACTIVE],
        'conversion_rate': _rate(counts[STATUS_FINALIZED_SUCCESS], total),
        'expiration_rate': _rate(counts[STATUS_EXPIRED], total),
        'average_sequence': round(sum(e.sequence for e in entries) / total, 2) if total else 0.0,
        'max_sequence': max((e.sequence for e in entries), default=0),
        'clients': len(window_clients),
        'stuck': len(window_clients & stuck_ids),
        'by_consultant': {str(k): v for k, v in sorted(per_consultant.items())},
    }


def active_assignments(now=None):
    """Every Active entry with remaining hours and urgency, plus a per-bucket summary."""
    now = as_utc(now) if now else utcnow()

    if CASCADE_SWEEP_ON_READ:
        from leadcascade.services.escalation import sweep
        sweep(now)

    session = get_session()
    try:
        warning_pct, critical_pct = _thresholds(session)
        items = _annotate(ledger.select_active(session), now, warning_pct, critical_pct)
    finally:
        session.close()

    summary = {bucket: 0 for bucket in URGENCY_BUCKETS}
    for item in items:
        summary[item['urgency_bucket']] += 1
    summary['total'] = len(items)

    return {'assignments': items, 'total': len(items), 'summary': summary}


def consultant_assignments(consultant_id, now=None):
    """One consultant's Active entries, earliest expiry first."""
    now = as_utc(now) if now else utcnow()

    session = get_session()
    try:
        warning_pct, critical_pct = _thresholds(session)
        entries = ledger.select_active(session, consultant_id=consultant_id)
        items = _annotate(entries, now, warning_pct, critical_pct)
    finally:
        session.close()

    items.sort(key=lambda i: i['entry']['expires_at'])
    return {'consultant_id': consultant_id, 'assignments': items, 'total': len(items)}


def user_ranking(period_start=None, period_end=None):
    """
    Per-consultant performance over the window.

    average_sequence is the mean sequence number of a consultant's entries:
    high values mean they mostly receive leads after earlier consultants let
    the SLA run out.
    """
    period_start, period_end = resolve_period(period_start, period_end)

    session = get_session()
    try:
        entries = ledger.select_started_between(session, period_start, period_end)
    finally:
        session.close()

    by_consultant = defaultdict(list)
    for e in entries:
        by_consultant[e.consultant_id].append(e)

    ranking = []
    for consultant_id, rows in by_consultant.items():
        counts = _status_counts(rows)
        total = len(rows)
        ranking.append({
            'consultant_id': consultant_id,
            'total_assignments': total,
            'finalized_success': counts[STATUS_FINALIZED_SUCCESS],
            'expired': counts[STATUS_EXPIRED],
            'active': counts[STATUS_ACTIVE],
            'conversion_rate': _rate(counts[STATUS_FINALIZED_SUCCESS], total),
            'average_sequence': round(sum(r.sequence for r in rows) / total, 2),
        })

    ranking.sort(key=lambda r: (-r['conversion_rate'], -r['total_assignments'], r['consultant_id']))

    return {
        'period': {'start': period_start.isoformat(), 'end': period_end.isoformat()},
        'ranking': ranking,
        'total': len(ranking),
    }


def cascade_history(cliente_id):
    """Every entry of one client in sequence order, with status statistics."""
    session = get_session()
    try:
        entries = ledger.entries_for_client(session, cliente_id)
        if not entries:
            raise NotFoundError('Client', cliente_id)
        history = [e.to_dict() for e in entries]
        counts = _status_counts(entries)
        consultants = {e.consultant_id for e in entries}
    finally:
        session.close()

    return {
        'cliente_id': cliente_id,
        'history': history,
        'statistics': {
            'total_sequences': len(history),
            'consultants_involved': len(consultants),
            'status': {
                'active': counts[STATUS_ACTIVE],
                'expired': counts[STATUS_EXPIRED],
                'finalized_success': counts[STATUS_FINALIZED_SUCCESS],
            },
        },
    }


def _bucket_key(started_at, group_by):
    day = as_utc(started_at).date()
    if group_by == 'day':
        return day.isoformat()
    if group_by == 'week':
        # ISO weeks start on Monday
        return (day - timedelta(days=day.weekday())).isoformat()
    return f"{day.year}-{day.month:02d}"


def trends(period_start=None, period_end=None, group_by='day'):
    """Entry counts per day, week or month of started_at."""
    if group_by not in GROUP_BY_OPTIONS:
        raise ValidationError(f"group_by must be one of {list(GROUP_BY_OPTIONS)}, got {group_by!r}")
    period_start, period_end = resolve_period(period_start, period_end)

    session = get_session()
    try:
        entries = ledger.select_started_between(session, period_start, period_end)
    finally:
        session.close()

    buckets = {}
    for e in entries:
        key = _bucket_key(e.started_at, group_by)
        bucket = buckets.setdefault(key, {
            'period': key, 'total_assignments': 0,
            'finalized_success': 0, 'expired': 0, 'active': 0,
        })
        bucket['total_assignments'] += 1
        if e.status == STATUS_FINALIZED_SUCCESS:
            bucket['finalized_success'] += 1
        elif e.status == STATUS_EXPIRED:
            bucket['expired'] += 1
        elif e.status == STATUS_ACTIVE:
            bucket['active'] += 1

    return {
        'period': {'start': period_start.isoformat(), 'end': period_end.isoformat()},
        'group_by': group_by,
        'trends': [buckets[k] for k in sorted(buckets)],
    }


def stuck_leads():
    """Clients whose whole queue expired with nobody converting the lead."""
    session = get_session()
    try:
        stuck_ids = _stuck_client_ids(session)
        rows = []
        for cliente_id in sorted(stuck_ids):
            entries = ledger.entries_for_client(session, cliente_id)
            last = entries[-1]
            rows.append({
                'cliente_id': cliente_id,
                'lead_id': last.lead_id,
                'last_consultant_id': last.consultant_id,
                'sequence': last.sequence,
                'expired_at': as_utc(last.finalized_at).isoformat() if last.finalized_at else None,
                'consultants': [e.consultant_id for e in entries],
            })
    finally:
        session.close()

    return {'stuck': rows, 'total': len(rows)}
