"""
Structured logging configuration.

Called once from create_app() and from the RQ sweep worker. Text or
single-line JSON output via LOG_FORMAT; LOG_LEVEL defaults to INFO.

JSON records carry cascade context (cliente_id, entry_id, consultant_id,
job_id) when a call site passes it through `extra=`.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

CONTEXT_FIELDS = ('cliente_id', 'entry_id', 'consultant_id', 'job_id')


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log aggregators."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


# Chatty at INFO: HTTP client, RQ worker heartbeat, SQL echo, dev server access log
_NOISY_LOGGERS = [
    'urllib3',
    'rq.worker',
    'rq.queue',
    'sqlalchemy.engine',
    'werkzeug',
]


def _resolve_level():
    level = getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(app=None):
    """
    Install a single stderr handler on the root logger.

    When a Flask app is given, its logger defers to the root handler so
    request errors come out in the same format.
    """
    level = _resolve_level()
    log_format = os.getenv('LOG_FORMAT', 'text').lower()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if log_format == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s %(name)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        ))
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.handlers.clear()
        app.logger.propagate = True
