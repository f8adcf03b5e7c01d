"""
SLA evaluator — pure functions turning (now, start, budget) into remaining
time and an urgency bucket.

Urgency is display-only and computed independently of ledger status: an entry
that is still nominally Active can report EXPIRADO until the next sweep runs.
"""
from datetime import datetime, timedelta, timezone

from leadcascade.config import CASCADE_WARNING_PCT, CASCADE_CRITICAL_PCT
from leadcascade.exceptions import ConfigurationError

# Urgency buckets, least → most urgent
OK = 'Ok'
ALERTA = 'Alerta'
CRITICO = 'Critico'
EXPIRADO = 'Expirado'

URGENCY_BUCKETS = [OK, ALERTA, CRITICO, EXPIRADO]


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """Attach UTC to naive datetimes (SQLite drops tzinfo); convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def expires_at_for(started_at, sla_hours):
    return as_utc(started_at) + timedelta(hours=sla_hours)


def hours_elapsed(started_at, now):
    return (as_utc(now) - as_utc(started_at)).total_seconds() / 3600


def consumed_fraction(now, started_at, sla_hours):
    """Share of the SLA budget already spent (≥ 1 means expired)."""
    if not sla_hours or sla_hours <= 0:
        raise ConfigurationError(f"sla_hours must be positive, got {sla_hours!r}")
    return hours_elapsed(started_at, now) / sla_hours


def status_bucket(now, started_at, sla_hours, warning_pct=None, critical_pct=None):
    """
    Classify an assignment by how much of its SLA has been consumed.

    Thresholds are percentages (75 means 75%). None falls back to the
    CASCADE_WARNING_PCT / CASCADE_CRITICAL_PCT settings.
    """
    if warning_pct is None:
        warning_pct = CASCADE_WARNING_PCT
    if critical_pct is None:
        critical_pct = CASCADE_CRITICAL_PCT

    consumed = consumed_fraction(now, started_at, sla_hours)
    if consumed >= 1:
        return EXPIRADO
    if consumed >= critical_pct / 100:
        return CRITICO
    if consumed >= warning_pct / 100:
        return ALERTA
    return OK


def hours_remaining(now, started_at, sla_hours):
    """max(0, sla_hours − elapsed), never more than the full budget."""
    elapsed = max(0.0, hours_elapsed(started_at, now))
    return round(max(0.0, sla_hours - elapsed), 2)
