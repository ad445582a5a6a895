from __future__ import annotations

import logging
from typing import Any

import httpx

from wordnest.infra.ports.publisher import ResultPublisherPort

logger = logging.getLogger(__name__)


class WebhookResultPublisher(ResultPublisherPort):
    """POSTs each result event as JSON to an external endpoint."""

    def __init__(self, *, url: str, api_key: str | None = None, timeout_seconds: float = 10.0, transport=None):
        self.url = url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    def publish(self, event: dict[str, Any]) -> None:
        with httpx.Client(transport=self._transport, timeout=self.timeout_seconds, trust_env=False) as client:
            response = client.post(self.url, json=event, headers=self._headers())
            response.raise_for_status()
        logger.debug("Published job %s to %s", event.get("jobId"), self.url)
