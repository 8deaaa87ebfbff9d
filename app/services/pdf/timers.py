"""Cancellation tokens and timers used by the render state machine.

A timer is any object with ``now()`` (seconds, monotonic) and
``call_later(delay, callback)`` returning a handle with ``cancel()``.
"""

import threading
import time
from datetime import datetime, timedelta

from apscheduler.jobstores.base import JobLookupError

from app.utils.scheduler import get_scheduler


class CancellationToken:
    """One-shot cancellation flag with callbacks.

    Child tokens are cancelled together with their parent.
    """

    def __init__(self, parent=None):
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks = []
        if parent is not None:
            parent.register(self.cancel)

    @property
    def cancelled(self):
        return self._cancelled

    def register(self, callback):
        """Run ``callback`` on cancellation (immediately if already cancelled)."""
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                return
        callback()

    def child(self):
        return CancellationToken(parent=self)

    def cancel(self):
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()


class ScheduledCall:
    def __init__(self, job):
        self._job = job

    def cancel(self):
        try:
            self._job.remove()
        except JobLookupError:
            # already fired or removed
            pass


class SchedulerTimer:
    """Timer backed by the shared APScheduler BackgroundScheduler."""

    def __init__(self, scheduler=None):
        self._scheduler = scheduler

    @property
    def scheduler(self):
        if self._scheduler is None:
            self._scheduler = get_scheduler()
        return self._scheduler

    def now(self):
        return time.monotonic()

    def call_later(self, delay, callback):
        run_date = datetime.now(self.scheduler.timezone) + timedelta(seconds=delay)
        job = self.scheduler.add_job(callback, 'date', run_date=run_date)
        return ScheduledCall(job)

    def submit(self, func):
        """Run ``func`` once on a scheduler worker thread, as soon as possible."""
        self.scheduler.add_job(func)
