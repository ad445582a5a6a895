"""In-process pub/sub keyed by job id.

Subscribers get a private queue. The broker also keeps the last event per
job so late subscribers and ``GET /result`` can be answered without waiting.
That cache is bounded; an evicted job is answered from its stored record.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections import OrderedDict, defaultdict
from typing import Any

from wordnest.infra.ports.publisher import ResultPublisherPort

logger = logging.getLogger(__name__)


def connection_payload(job_id: str, job_type: str) -> dict[str, Any]:
    """Placeholder returned before any result has been published."""
    if job_type == "translation":
        return {"jobId": job_id, "status": "pending", "translation": None, "error": None}
    return {"jobId": job_id, "status": "pending", "story": None, "newWords": [], "error": None}


class Subscription:
    def __init__(self, broker: InMemoryResultBroker, job_id: str):
        self.job_id = job_id
        self._broker = broker
        self._queue: queue.Queue[dict[str, Any]] = queue.Queue()
        self.closed = False

    def deliver(self, event: dict[str, Any]) -> None:
        self._queue.put(event)

    def get(self, timeout: float | None = None) -> dict[str, Any] | None:
        """Next event, or None when ``timeout`` elapses."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._broker.unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


DEFAULT_MAX_CACHED_EVENTS = 1024


class InMemoryResultBroker(ResultPublisherPort):
    def __init__(self, *, max_cached_events: int = DEFAULT_MAX_CACHED_EVENTS):
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Subscription]] = defaultdict(list)
        self._latest: OrderedDict[str, dict[str, Any]] = OrderedDict()
        self.max_cached_events = max(1, int(max_cached_events))

    def publish(self, event: dict[str, Any]) -> None:
        job_id = str(event.get("jobId") or "")
        if not job_id:
            raise ValueError("Result event is missing jobId")

        with self._lock:
            self._latest[job_id] = dict(event)
            self._latest.move_to_end(job_id)
            while len(self._latest) > self.max_cached_events:
                self._latest.popitem(last=False)
            subscribers = list(self._subscribers.get(job_id, ()))

        for subscription in subscribers:
            subscription.deliver(dict(event))
        logger.info("Published %s event for job %s to %d subscriber(s)", event.get("status"), job_id, len(subscribers))

    def subscribe(self, job_id: str) -> Subscription:
        subscription = Subscription(self, job_id)
        with self._lock:
            self._subscribers[job_id].append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.job_id)
            if not subscribers:
                return
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                del self._subscribers[subscription.job_id]

    def latest(self, job_id: str) -> dict[str, Any] | None:
        with self._lock:
            event = self._latest.get(job_id)
            return dict(event) if event is not None else None

    def cached_event_count(self) -> int:
        with self._lock:
            return len(self._latest)

    def subscriber_count(self, job_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(job_id, ()))

    def connection_payload(self, job_id: str, job_type: str) -> dict[str, Any]:
        return connection_payload(job_id, job_type)
