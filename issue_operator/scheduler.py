"""Background dispatcher for reconcile cycles"""

import logging
import threading
from datetime import datetime, timedelta, timezone

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from issue_operator.config import settings
from issue_operator.models.base import SessionLocal
from issue_operator.services.credentials import SecretCredentialProvider
from issue_operator.services.reconciler import IssueReconciler
from issue_operator.services.store import ResourceStore

logger = logging.getLogger(__name__)


def _job_id(namespace: str, name: str) -> str:
    return f"reconcile:{namespace}/{name}"


class ReconcileScheduler:
    """Runs reconcile cycles for desired issues.

    Each resource has at most one pending job and is never reconciled twice at
    once, while different resources run in parallel on the worker pool. A
    resource enqueued while its cycle is running is marked dirty and gets a
    fresh cycle as soon as the running one ends.
    """

    def __init__(self, session_factory=SessionLocal, workers: int | None = None):
        self.session_factory = session_factory
        workers = workers or settings.reconcile_workers
        self.scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(workers)},
            # Overlapping runs of one resource are folded by _start_cycle, so
            # APScheduler must not drop the follow-up job of a finishing cycle.
            job_defaults={"max_instances": workers + 1, "coalesce": True, "misfire_grace_time": None},
        )
        self._failures: dict[str, int] = {}
        self._running: set[str] = set()
        self._dirty: set[str] = set()
        self._lock = threading.Lock()

    def start(self):
        """Start the scheduler"""
        self.scheduler.start()
        logger.info("Reconcile scheduler started")

        self.enqueue_all()

    def stop(self):
        """Stop the scheduler"""
        self.scheduler.shutdown()
        logger.info("Reconcile scheduler stopped")

    def enqueue_all(self):
        """Queue an immediate cycle for every stored resource"""
        db = self.session_factory()
        try:
            resources = ResourceStore(db).list()
            keys = [(r.namespace, r.name) for r in resources]
        finally:
            db.close()

        for namespace, name in keys:
            self.enqueue(namespace, name)

    def enqueue(self, namespace: str, name: str, delay_s: float = 0):
        """Queue a cycle for one resource, keeping an earlier pending one"""
        key = f"{namespace}/{name}"
        with self._lock:
            if key in self._running:
                self._dirty.add(key)
                logger.debug(f"Reconcile of {key} is running, marked dirty")
                return

        job_id = _job_id(namespace, name)
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay_s)

        existing = self.scheduler.get_job(job_id)
        if existing is not None:
            next_run = getattr(existing, "next_run_time", None)
            if next_run is not None and next_run <= run_date:
                return

        self.scheduler.add_job(
            func=self._reconcile_job,
            trigger=DateTrigger(run_date=run_date),
            id=job_id,
            args=[namespace, name],
            replace_existing=True,
        )
        logger.debug(f"Queued reconcile of {namespace}/{name} in {delay_s:.0f}s")

    def backoff_delay(self, key: str) -> float:
        """Record a failure for ``key`` and return how long to wait"""
        with self._lock:
            failures = self._failures.get(key, 0) + 1
            self._failures[key] = failures
        delay = settings.backoff_base_seconds * (2 ** (failures - 1))
        return min(settings.backoff_max_seconds, delay)

    def _reset_backoff(self, key: str):
        with self._lock:
            self._failures.pop(key, None)

    def _build_reconciler(self, db) -> IssueReconciler:
        store = ResourceStore(db)
        return IssueReconciler(store, SecretCredentialProvider(store))

    def _start_cycle(self, key: str) -> bool:
        with self._lock:
            if key in self._running:
                self._dirty.add(key)
                return False
            self._running.add(key)
            self._dirty.discard(key)
            return True

    def _finish_cycle(self, key: str) -> bool:
        """Release ``key``; returns True if it was enqueued meanwhile."""
        with self._lock:
            self._running.discard(key)
            dirty = key in self._dirty
            self._dirty.discard(key)
            return dirty

    def _reconcile_job(self, namespace: str, name: str):
        """Job function: one reconcile cycle, then requeue"""
        key = f"{namespace}/{name}"
        if not self._start_cycle(key):
            logger.debug(f"Reconcile of {key} already running, folded into it")
            return

        delay = None
        db = self.session_factory()
        try:
            result = self._build_reconciler(db).reconcile(namespace, name)
        except Exception as e:
            delay = self.backoff_delay(key)
            logger.error(f"Reconcile of {key} failed, retrying in {delay:.0f}s: {e}")
        else:
            self._reset_backoff(key)
            delay = result.requeue_after or None
        finally:
            db.close()
            dirty = self._finish_cycle(key)

        if dirty:
            logger.debug(f"{key} changed during its cycle, reconciling again")
            delay = 0
        if delay is not None:
            self.enqueue(namespace, name, delay)


# Global scheduler instance
scheduler = ReconcileScheduler()
