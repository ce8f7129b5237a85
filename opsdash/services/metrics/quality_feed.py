"""Client for the external quality-score feed.

The feed is a single JSON document published by the review team.  It is
pulled on its own, slower schedule and exposed as-is; the metrics engine never
reads it.

Usage:
    client = QualityFeedClient(url="https://reviews.example.com/scores.json")
    scores = await client.fetch_scores()
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from opsdash.services.metrics.errors import QualityFeedError

logger = logging.getLogger(__name__)


class QualityFeedClient:
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def fetch_scores(self) -> dict[str, Any]:
        """GET the feed and return its decoded JSON object.

        Raises:
            QualityFeedError: transport failure, non-2xx status or a body that
                is not a JSON object.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url, headers=self._get_headers())
        except httpx.HTTPError as exc:
            logger.warning("quality_feed_request_failed url=%s error=%s", self.url, exc)
            raise QualityFeedError("quality_feed_unreachable", f"Quality feed unreachable: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "quality_feed_bad_status url=%s status=%s body=%s",
                self.url,
                response.status_code,
                response.text[:200],
            )
            raise QualityFeedError(
                "quality_feed_bad_status",
                f"Quality feed returned HTTP {response.status_code}",
                retryable=response.status_code == 429 or response.status_code >= 500,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise QualityFeedError("quality_feed_invalid_body", "Quality feed returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise QualityFeedError("quality_feed_invalid_body", "Quality feed payload is not an object")

        logger.info("quality_feed_fetched url=%s keys=%s", self.url, len(payload))
        return payload
