"""
Centralized configuration — all env vars, cascade defaults, status vocabularies.
"""
import os


def _env_flag(name, default='false'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Slack notifications ──────────────────────────────────────────────────────
SLACK_WEBHOOK_URL = os.getenv('SLACK_WEBHOOK_URL')

# ── Escalation sweep ─────────────────────────────────────────────────────────
CASCADE_SWEEP_ENABLED = _env_flag('CASCADE_SWEEP_ENABLED')
CASCADE_SWEEP_INTERVAL_SECONDS = int(os.getenv('CASCADE_SWEEP_INTERVAL_SECONDS', '60'))
CASCADE_SWEEP_LOCK_TTL = int(os.getenv('CASCADE_SWEEP_LOCK_TTL', '55'))
CASCADE_SWEEP_ON_READ = _env_flag('CASCADE_SWEEP_ON_READ')

# ── SLA defaults (overridden by the active CascadeConfig) ────────────────────
CASCADE_DEFAULT_SLA_HOURS = int(os.getenv('CASCADE_DEFAULT_SLA_HOURS', '24'))
CASCADE_WARNING_PCT = int(os.getenv('CASCADE_WARNING_PCT', '75'))
CASCADE_CRITICAL_PCT = int(os.getenv('CASCADE_CRITICAL_PCT', '90'))

# ── Reporting ────────────────────────────────────────────────────────────────
CASCADE_REPORT_DAYS = int(os.getenv('CASCADE_REPORT_DAYS', '30'))

# ── Ledger status values ─────────────────────────────────────────────────────
STATUS_ACTIVE = 'Active'
STATUS_EXPIRED = 'Expired'
STATUS_FINALIZED_SUCCESS = 'FinalizedSuccess'

# ── Finalization reasons ─────────────────────────────────────────────────────
REASON_APPOINTMENT_BOOKED = 'Agendamento_criado'
REASON_SLA_EXPIRED = 'SLA_Expirado'

# ── Distribution methods ─────────────────────────────────────────────────────
DISTRIBUTION_METHODS = [
    'volume',
    'performance',
    'round-robin',
]
