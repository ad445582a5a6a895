"""Delivers committed job inserts to the job processor in batches."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterable

from wordnest.domain.models import JobChange, JobRecord

logger = logging.getLogger(__name__)

BatchHandler = Callable[[list[JobChange]], None]
JobLoader = Callable[[str], JobRecord | None]
BacklogLoader = Callable[[], Iterable[JobRecord]]

_STOP = object()


class JobChangeNotifier:
    def __init__(
        self,
        handler: BatchHandler,
        *,
        batch_size: int = 10,
        sync: bool = False,
        job_loader: JobLoader | None = None,
        backlog_loader: BacklogLoader | None = None,
    ):
        self.handler = handler
        self.batch_size = max(1, int(batch_size))
        self.sync = sync
        self.job_loader = job_loader
        self.backlog_loader = backlog_loader
        self._queue: queue.Queue = queue.Queue()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def publish(self, changes: Iterable[JobChange]) -> None:
        items = list(changes)
        if not items:
            return

        if self.sync:
            for start in range(0, len(items), self.batch_size):
                self._dispatch(items[start : start + self.batch_size])
            return

        for change in items:
            self._queue.put(change)

    def redeliver(self, job_id: str) -> bool:
        """Enqueue another INSERT for an existing job, as an at-least-once stream may."""
        if self.job_loader is None:
            raise RuntimeError("Redelivery needs a job loader")
        job = self.job_loader(job_id)
        if job is None:
            return False
        self.publish([JobChange(event_name="INSERT", job=job)])
        return True

    def replay_backlog(self) -> int:
        """Re-enqueue jobs still waiting in the store, e.g. ones queued when the last process stopped."""
        if self.backlog_loader is None:
            return 0
        changes = [JobChange(event_name="INSERT", job=job) for job in self.backlog_loader()]
        if changes:
            logger.info("Replaying %d pending job(s)", len(changes))
            self.publish(changes)
        return len(changes)

    def start(self) -> None:
        with self._lock:
            if self.sync or self.running:
                return
            self._thread = threading.Thread(target=self._run, name="job-change-notifier", daemon=True)
            self._thread.start()
        logger.info("Job change notifier started (batch size %d)", self.batch_size)
        self.replay_backlog()

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is None:
            return
        self._queue.put(_STOP)
        thread.join(timeout)
        logger.info("Job change notifier stopped")

    def join(self) -> None:
        """Block until every queued change has been handled."""
        self._queue.join()

    def _next_batch(self) -> list[JobChange] | None:
        first = self._queue.get()
        if first is _STOP:
            self._queue.task_done()
            return None

        batch = [first]
        while len(batch) < self.batch_size:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is _STOP:
                # Leave the stop marker for the next loop iteration.
                self._queue.task_done()
                self._queue.put(_STOP)
                break
            batch.append(item)
        return batch

    def _run(self) -> None:
        while True:
            batch = self._next_batch()
            if batch is None:
                return
            try:
                self._dispatch(batch)
            finally:
                for _ in batch:
                    self._queue.task_done()

    def _dispatch(self, batch: list[JobChange]) -> None:
        try:
            self.handler(batch)
        except Exception:
            logger.exception("Job batch handler failed for %d change(s)", len(batch))
