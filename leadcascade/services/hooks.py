"""
Lifecycle hooks — the post-commit interface CRUD services call into.

Lead creation and appointment booking must never fail because of the
cascade, so both hooks log every engine error and return None.
"""
import logging

from leadcascade.services import orchestrator

logger = logging.getLogger('services.hooks')


def on_lead_created(lead_id, cliente_id):
    """Start a cascade for the lead's client. Returns the sequence-1 entry dict or None."""
    try:
        return orchestrator.start_cascade(lead_id, cliente_id)
    except Exception:
        logger.error("Cascade start failed for lead %s (client %s)", lead_id, cliente_id, exc_info=True)
        return None


def on_appointment_booked(cliente_id, consultant_id):
    """Converge the client's cascade. Returns the number of entries finalized, or None on error."""
    try:
        return orchestrator.finalize_all(cliente_id, consultant_id)
    except Exception:
        logger.error("Cascade finalize failed for client %s (consultant %s)",
                     cliente_id, consultant_id, exc_info=True)
        return None
