"""
Convergence handler — close every open cascade entry for a client the instant
one consultant converts the lead (books an appointment).

"First qualifying event wins, the rest are no-ops": the close is a single
UPDATE conditioned on status=Active, so a concurrent or repeated call affects
zero rows and returns 0 instead of failing.
"""
import logging

from leadcascade.config import REASON_APPOINTMENT_BOOKED
from leadcascade.database import get_session
from leadcascade.exceptions import ValidationError
from leadcascade.services import ledger
from leadcascade.services.sla import as_utc, utcnow

logger = logging.getLogger('services.convergence')


def finalize_all(cliente_id, triggering_consultant_id, reason=REASON_APPOINTMENT_BOOKED, now=None):
    """
    Active → FinalizedSuccess for every Active entry of cliente_id.

    Acts on current ledger state, not on the triggering consultant's own row:
    if A's entry already expired and B's successor is Active, B's entry is
    the one closed, stamped as finalized by A.

    Returns the number of rows finalized (0 when nothing was open).
    """
    if cliente_id is None:
        raise ValidationError("finalize_all requires a cliente_id")
    if triggering_consultant_id is None:
        raise ValidationError("finalize_all requires the triggering consultant id")

    now = as_utc(now) if now else utcnow()
    reason = reason or REASON_APPOINTMENT_BOOKED

    session = get_session()
    try:
        count = ledger.finalize_active(session, cliente_id, triggering_consultant_id, reason, now)
        session.commit()
        if count == 0:
            # A sweep may have committed a successor after our statement snapshot
            count = ledger.finalize_active(session, cliente_id, triggering_consultant_id, reason, now)
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if count:
        logger.info("Finalized %d cascade entr%s for client %s (consultant %s, reason=%s)",
                    count, 'y' if count == 1 else 'ies', cliente_id, triggering_consultant_id, reason)
    else:
        logger.info("No Active cascade entry for client %s — finalize is a no-op", cliente_id)
    return count
