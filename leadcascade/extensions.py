"""
Shared client instances — Redis connection and the RQ queue.

redis.from_url() does not connect until the first command, so importing this
module is always safe (even when Redis is down during tests).
"""
import logging
import redis

from leadcascade.config import REDIS_URL

logger = logging.getLogger('leadcascade.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL, decode_responses=True)

# ── RQ (lazy, so processes that never enqueue never import rq) ─────────────
_queue = None


def get_queue():
    global _queue
    if _queue is None:
        from rq import Queue
        _queue = Queue('cascade', connection=redis_client)
    return _queue
