"""
build_webhooks.dispatcher — POST a serialized payload to each destination URL.

Every URL is attempted independently: a non-2xx response or a transport
error (DNS, connect, timeout, malformed response) is logged and recorded as
a failed DeliveryResult, and the next URL is still attempted. Nothing is
retried and nothing is raised.

Worst-case latency is POST_TIMEOUT_SECONDS x len(urls) per payload, since
deliveries run sequentially on the calling thread.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import requests
from aws_lambda_powertools import Logger

from build_webhooks.config import POST_TIMEOUT_SECONDS

logger = Logger(service="build-webhooks")

_MAX_LOGGED_BODY = 1000


@dataclass(frozen=True)
class DeliveryResult:
    url: str
    ok: bool
    status_code: int | None = None
    error: str | None = None


class Dispatcher:
    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session
        self._timeout = (POST_TIMEOUT_SECONDS, POST_TIMEOUT_SECONDS)

    def _send(self, url: str, payload: str) -> Any:
        post = self._session.post if self._session is not None else requests.post
        return post(
            url,
            data=payload.encode("utf-8"),
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )

    def post(self, url: str, payload: str) -> DeliveryResult:
        try:
            response = self._send(url, payload)
            status_code = int(response.status_code)
            if 200 <= status_code < 300:
                logger.info(
                    "Payload POST-ed", extra={"url": url, "status_code": status_code}
                )
                return DeliveryResult(url=url, ok=True, status_code=status_code)

            body = (response.text or "")[:_MAX_LOGGED_BODY]
            logger.error(
                "Webhook POST got unsuccessful response",
                extra={"url": url, "status_code": status_code, "response_body": body},
            )
            return DeliveryResult(
                url=url, ok=False, status_code=status_code, error=f"HTTP {status_code}"
            )
        except Exception as exc:
            logger.exception("Failed to POST payload", extra={"url": url})
            return DeliveryResult(url=url, ok=False, error=f"{type(exc).__name__}: {exc}")

    def dispatch(self, payload: str, urls: Iterable[str]) -> list[DeliveryResult]:
        return [self.post(url, payload) for url in urls]
