import threading
from typing import Callable, Protocol

from cashbook.logger_config import logger


class ScheduledJob(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def schedule(self, interval_seconds: float, fn: Callable[[], None]) -> ScheduledJob:
        ...


class RepeatingTimer:
    """Calls ``fn`` every ``interval_seconds`` on a daemon timer thread until cancelled."""

    def __init__(self, interval_seconds: float, fn: Callable[[], None]):
        self.interval_seconds = interval_seconds
        self.fn = fn
        self._lock = threading.Lock()
        self._timer = None
        self._cancelled = False

    def start(self) -> "RepeatingTimer":
        with self._lock:
            if not self._cancelled:
                self._timer = threading.Timer(self.interval_seconds, self._run)
                self._timer.daemon = True
                self._timer.start()
        return self

    def _run(self) -> None:
        try:
            self.fn()
        except Exception:
            logger.exception("Scheduled job failed")
        self.start()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()


class ThreadingScheduler:
    def __init__(self):
        self.jobs = []

    def schedule(self, interval_seconds: float, fn: Callable[[], None]) -> RepeatingTimer:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        job = RepeatingTimer(interval_seconds, fn).start()
        self.jobs.append(job)
        return job

    def shutdown(self) -> None:
        for job in self.jobs:
            job.cancel()
        self.jobs.clear()
