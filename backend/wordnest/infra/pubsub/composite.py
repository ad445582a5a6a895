from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from wordnest.infra.ports.publisher import ResultPublisherPort

logger = logging.getLogger(__name__)


class CompositeResultPublisher(ResultPublisherPort):
    """Best-effort fan-out: a failing publisher is logged and skipped."""

    def __init__(self, publishers: Iterable[ResultPublisherPort]):
        self.publishers = list(publishers)

    def publish(self, event: dict[str, Any]) -> None:
        for publisher in self.publishers:
            try:
                publisher.publish(event)
            except Exception as exc:
                logger.warning(
                    "Publishing result for job %s via %s failed: %s",
                    event.get("jobId"),
                    type(publisher).__name__,
                    exc,
                )
