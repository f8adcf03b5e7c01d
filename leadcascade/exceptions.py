"""
Cascade engine exception hierarchy.

Call sites in the lead-creation and appointment-booking paths treat every
CascadeError as non-fatal (see services.hooks).
"""


class CascadeError(Exception):
    """Base exception for all cascade engine errors."""


class ValidationError(CascadeError):
    """Missing or malformed input (no cliente_id, bad payload)."""


class NotFoundError(CascadeError):
    """Unknown lead, client, consultant or configuration."""

    def __init__(self, kind, identifier):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier!r} not found")


class ConfigurationError(CascadeError):
    """Cascade configuration is unusable (empty queue, non-positive SLA hours)."""


class ConcurrencyNoOp(CascadeError):
    """
    A conditional transition matched no Active row.

    This is a signal, not a failure: another worker (or a convergence) already
    moved the row forward.
    """

    def __init__(self, entry_id, target_status):
        self.entry_id = entry_id
        self.target_status = target_status
        super().__init__(f"Entry {entry_id} is no longer Active — {target_status} transition skipped")
