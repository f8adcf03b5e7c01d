"""
Sweep trigger — periodic in-process ticker plus an on-demand RQ job.

Each tick takes a short Redis lock (SET NX EX) so that only one process sweeps
at a time. The lock is an optimisation: two overlapping sweeps are still safe
because every transition is a conditional update.
"""
import logging
import threading
import uuid

import redis

from leadcascade.config import CASCADE_SWEEP_INTERVAL_SECONDS, CASCADE_SWEEP_LOCK_TTL
from leadcascade.services import escalation

logger = logging.getLogger('services.scheduler')

LOCK_KEY = 'cascade:sweep:lock'


class SweepScheduler:
    """Background thread calling escalation.sweep() every interval_seconds."""

    def __init__(self, interval_seconds=CASCADE_SWEEP_INTERVAL_SECONDS, redis_conn=None,
                 lock_ttl=CASCADE_SWEEP_LOCK_TTL):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        if redis_conn is None:
            from leadcascade.extensions import redis_client
            redis_conn = redis_client
        self.interval_seconds = interval_seconds
        self.lock_ttl = lock_ttl
        self._redis = redis_conn
        self._stop = threading.Event()
        self._thread = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    # ── Lock ─────────────────────────────────────────────────────────────

    def _acquire(self):
        token = uuid.uuid4().hex
        try:
            if self._redis.set(LOCK_KEY, token, nx=True, ex=self.lock_ttl):
                return token
            return None
        except redis.RedisError:
            logger.warning("Redis unavailable — sweeping without the cross-process lock", exc_info=True)
            return ''

    def _release(self, token):
        if not token:
            return
        try:
            if self._redis.get(LOCK_KEY) == token:
                self._redis.delete(LOCK_KEY)
        except redis.RedisError:
            logger.warning("Could not release sweep lock — it expires in %ds", self.lock_ttl)

    # ── Ticks ────────────────────────────────────────────────────────────

    def tick(self, now=None):
        """Run one sweep if the lock is free. Returns the SweepResult or None."""
        token = self._acquire()
        if token is None:
            logger.debug("Sweep lock held by another process, skipping tick")
            return None
        try:
            return escalation.sweep(now)
        except Exception:
            logger.error("Sweep tick failed", exc_info=True)
            return None
        finally:
            self._release(token)

    def _run(self):
        logger.info("Sweep scheduler started (every %ds)", self.interval_seconds)
        while not self._stop.wait(self.interval_seconds):
            self.tick()
        logger.info("Sweep scheduler stopped")

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name='cascade-sweep', daemon=True)
        self._thread.start()

    def stop(self, timeout=5):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


# ── On-demand sweep (enqueued via RQ) ────────────────────────────────────────

def run_sweep_job():
    """RQ entry point. Returns the SweepResult as a dict (stored as the job result)."""
    return escalation.sweep().to_dict()


def enqueue_sweep():
    """Queue a sweep on the 'cascade' RQ queue. Returns the job id."""
    from leadcascade.extensions import get_queue
    job = get_queue().enqueue(run_sweep_job, job_timeout=600)
    logger.info("Sweep enqueued as job %s", job.id)
    return job.id
