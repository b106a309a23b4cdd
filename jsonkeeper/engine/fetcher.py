"""HTTP fetching with linear retry backoff."""

from __future__ import annotations

import itertools
import json
import time
from typing import Any

import httpx
import structlog

from .. import __version__
from ..errors import OperationFailed, from_http_error, from_json_error

USER_AGENT = f"jsonkeeper/{__version__}"
BACKOFF_STEP_SECONDS = 1.0


def resolve_url(base_url: str, url: str) -> str:
    """Join ``url`` onto ``base_url`` unless it already carries a scheme."""

    if url.startswith("http"):
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


class RetryingFetcher:
    """GET JSON with retries, POST JSON once."""

    def __init__(
        self,
        base_url: str,
        request_timeout: float = 30.0,
        max_attempts: int = 3,
        logger: structlog.BoundLogger | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url
        self.request_timeout = request_timeout
        # A single attempt is always made.
        self.max_attempts = max(1, int(max_attempts))
        self.logger = logger or structlog.get_logger("jsonkeeper.fetcher")
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=request_timeout,
            headers={"User-Agent": USER_AGENT},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RetryingFetcher":
        return self

    def __exit__(self, *_exc_info: Any) -> None:
        self.close()

    def fetch(self, url: str) -> Any:
        full_url = resolve_url(self.base_url, url)
        self.logger.info("fetch_started", url=full_url, max_attempts=self.max_attempts)

        for attempt in itertools.count(1):
            final = attempt == self.max_attempts
            try:
                response = self._client.request(
                    method="GET",
                    url=full_url,
                    timeout=self.request_timeout,
                )
            except httpx.RequestError as exc:
                if final:
                    raise from_http_error(exc, full_url) from exc
                self.logger.warning(
                    "fetch_error",
                    url=full_url,
                    attempt=attempt,
                    error=str(exc),
                )
            else:
                if response.is_success:
                    payload = self._decode(response, full_url)
                    self.logger.info("fetch_succeeded", url=full_url, attempt=attempt)
                    return payload
                if final:
                    raise OperationFailed(response.status_code, response.text, url=full_url)
                self.logger.warning(
                    "fetch_bad_status",
                    url=full_url,
                    attempt=attempt,
                    status=response.status_code,
                )

            delay = BACKOFF_STEP_SECONDS * attempt
            self.logger.info("fetch_retry_scheduled", url=full_url, attempt=attempt, delay=delay)
            time.sleep(delay)

    def post(self, url: str, value: Any) -> Any:
        full_url = resolve_url(self.base_url, url)
        self.logger.info("post_started", url=full_url)
        try:
            response = self._client.request(
                method="POST",
                url=full_url,
                json=value,
                timeout=self.request_timeout,
            )
        except httpx.RequestError as exc:
            raise from_http_error(exc, full_url) from exc
        if not response.is_success:
            raise OperationFailed(response.status_code, response.text, url=full_url)
        payload = self._decode(response, full_url)
        self.logger.info("post_succeeded", url=full_url, status=response.status_code)
        return payload

    @staticmethod
    def _decode(response: httpx.Response, url: str) -> Any:
        try:
            return json.loads(response.text)
        except json.JSONDecodeError as exc:
            raise from_json_error(exc, url) from exc


__all__ = ["BACKOFF_STEP_SECONDS", "RetryingFetcher", "USER_AGENT", "resolve_url"]
