from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

from hcp.config import HTTP_TIMEOUT_SECONDS, PING_BASE_URL, RETRY_DELAY_SECONDS
from hcp.models import JobId, PingUrls

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(HTTP_TIMEOUT_SECONDS)


class PingError(Exception):
    """A ping could not be delivered, retry included."""

    def __init__(self, label: str, cause: Exception) -> None:
        super().__init__(f"{label}: {cause}")
        self.label = label
        self.cause = cause


def make_client() -> httpx.Client:
    return httpx.Client(timeout=DEFAULT_TIMEOUT, follow_redirects=True)


def is_retryable(exc: httpx.HTTPError) -> bool:
    """Server errors and transport failures are worth a second attempt."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return True


class Reporter:
    """Sends start/success/failure pings for one job to the healthcheck service."""

    def __init__(
        self,
        job_id: JobId,
        client: httpx.Client | None = None,
        base_url: str | None = None,
        retry_delay: float = RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.urls = PingUrls.for_job(job_id, base_url or PING_BASE_URL)
        self._client = client or make_client()
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._finished = False

    def ping_start(self) -> None:
        self._send("GET", self.urls.start_url, None, "/start")

    def ping_success(self, message: bytes | str) -> None:
        self._send("POST", self.urls.success_url, _as_bytes(message), "finish")

    def ping_failure(self, message: bytes | str) -> None:
        self._send("POST", self.urls.fail_url, _as_bytes(message), "finish")

    def finish(self, message: bytes | str, code: int) -> None:
        """Send the terminal ping: success when ``code`` is 0, failure otherwise."""
        if self._finished:
            raise RuntimeError("terminal ping already sent")
        self._finished = True
        if code == 0:
            self.ping_success(message)
        else:
            self.ping_failure(message)

    def close(self) -> None:
        self._client.close()

    def _send(self, method: str, url: str, body: bytes | None, label: str) -> None:
        try:
            self._request(method, url, body)
        except httpx.HTTPError as exc:
            if not is_retryable(exc):
                raise PingError(label, exc) from exc
            logger.warning(
                "Healthcheck %s failed, retrying in %gs: %s", label, self._retry_delay, exc
            )
            self._sleep(self._retry_delay)
            try:
                self._request(method, url, body)
            except httpx.HTTPError as retry_exc:
                raise PingError(label, retry_exc) from retry_exc

    def _request(self, method: str, url: str, body: bytes | None) -> None:
        resp = self._client.request(method, url, content=body)
        resp.raise_for_status()
        logger.debug("%s %s -> %d", method, url, resp.status_code)


def _as_bytes(message: bytes | str) -> bytes:
    if isinstance(message, str):
        return message.encode("utf-8")
    return message
