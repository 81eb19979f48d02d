"""Rate-limited HTTP session with bounded retries."""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping

import requests

from .config import ResolverConfig


# ESRB answers bursts of scraping with 403 as well as 429.
_RETRYABLE_HTTP_STATUS = {403, 429, 500, 502, 503, 504}
_RETRYABLE_ERRORS = (requests.ConnectionError, requests.Timeout)
_MAX_RETRY_DELAY_S = 300.0

_LOGGER = logging.getLogger("slategen.net")


class HttpClient:
    """GET with a minimum interval between requests and exponential back-off.

    Retryable statuses and dropped connections/timeouts are retried up to
    `max_retries` times; any other HTTP error raises immediately.
    """

    def __init__(self, cfg: ResolverConfig, *, session: requests.Session | None = None) -> None:
        self.cfg = cfg
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "User-Agent": cfg.user_agent,
                "Accept": (
                    "text/html,application/xhtml+xml,application/xml;q=0.9,"
                    "image/avif,image/webp,image/apng,*/*;q=0.8"
                ),
                "Accept-Language": "en-US,en;q=0.9",
            }
        )
        self._min_interval_s = max(float(cfg.min_request_interval_s), 0.0)
        self._max_retries = max(int(cfg.max_retries), 0)
        self._backoff_s = max(float(cfg.retry_backoff_s), 0.01)
        self._last_request_at: float | None = None

    def get(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> requests.Response:
        attempt = 0
        while True:
            self._throttle()
            try:
                response = self._session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self.cfg.request_timeout_s,
                )
            except _RETRYABLE_ERRORS as exc:
                if attempt >= self._max_retries:
                    raise
                delay_s = self._retry_delay_s(attempt)
                _LOGGER.warning(
                    "Request to %s failed (%s); retrying in %.1fs (%d/%d)",
                    url,
                    exc,
                    delay_s,
                    attempt + 1,
                    self._max_retries,
                )
            else:
                if response.status_code not in _RETRYABLE_HTTP_STATUS or attempt >= self._max_retries:
                    response.raise_for_status()
                    return response
                retry_after_s = _parse_retry_after_seconds(response.headers.get("Retry-After"))
                delay_s = self._retry_delay_s(attempt, retry_after_s)
                _LOGGER.warning(
                    "HTTP %s from %s; retrying in %.1fs (%d/%d)",
                    response.status_code,
                    response.url,
                    delay_s,
                    attempt + 1,
                    self._max_retries,
                )
                response.close()
            time.sleep(delay_s)
            attempt += 1

    def get_text(self, url: str, *, params: Mapping[str, Any] | None = None) -> str:
        return self.get(url, params=params).text

    def get_bytes(self, url: str) -> bytes:
        return self.get(url).content

    def _throttle(self) -> None:
        if self._min_interval_s > 0 and self._last_request_at is not None:
            remaining = self._min_interval_s - (time.monotonic() - self._last_request_at)
            if remaining > 0:
                time.sleep(remaining)
        self._last_request_at = time.monotonic()

    def _retry_delay_s(self, attempt: int, retry_after_s: float = 0.0) -> float:
        return min(max(self._backoff_s * (2**attempt), retry_after_s), _MAX_RETRY_DELAY_S)


def _parse_retry_after_seconds(raw: str | None) -> float:
    """Seconds from a numeric Retry-After header; HTTP-date values count as 0."""
    if raw is None or not raw.strip():
        return 0.0
    try:
        return max(float(raw.strip()), 0.0)
    except ValueError:
        return 0.0
