from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ResultPublisherPort(ABC):
    @abstractmethod
    def publish(self, event: dict[str, Any]) -> None:
        """Push a job result event ``{jobId, status, ...}`` to subscribers."""
