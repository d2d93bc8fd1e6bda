"""Carrier API client (GoSweetSpot).

A thin adapter: POST a JSON payload to ``{GSS_API_URL}/{endpoint}``
authenticated with the ``access_key`` header, and hand back an
``ApiResult``. Transport errors, timeouts, non-2xx responses and bodies
that are not JSON all come back as ``success=False``; nothing raises.

Bounded retry (``GSS_API_MAX_RETRIES``, off by default) applies only to
transport failures and 5xx responses.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx
import structlog
from django.conf import settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ApiResult:
    success: bool
    data: Any = None
    error: str = ""
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, data: Any, status_code: int) -> ApiResult:
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, error: str, status_code: Optional[int] = None) -> ApiResult:
        return cls(success=False, error=error, status_code=status_code)


class RateClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = (base_url or settings.GSS_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.GSS_API_KEY
        self.timeout = timeout if timeout is not None else settings.GSS_API_TIMEOUT
        self.max_retries = (
            max_retries if max_retries is not None else settings.GSS_API_MAX_RETRIES
        )
        self.backoff = backoff if backoff is not None else settings.GSS_API_BACKOFF
        self._transport = transport
        self._sleep = sleep

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "access_key": self.api_key,
        }

    def request(
        self, endpoint: str, payload: Dict[str, Any], method: str = "POST"
    ) -> ApiResult:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        log = logger.bind(endpoint=endpoint, method=method)

        attempt = 0
        while True:
            result = self._send(url, payload, method, log)
            retryable = not result.success and (
                result.status_code is None or result.status_code >= 500
            )
            if not retryable or attempt >= self.max_retries:
                return result
            delay = self.backoff * (2**attempt)
            attempt += 1
            log.warning(
                "carrier_api.retrying", attempt=attempt, delay=delay, error=result.error
            )
            self._sleep(delay)

    def _send(self, url: str, payload: Dict[str, Any], method: str, log) -> ApiResult:
        start = time.monotonic()
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as http:
                response = http.request(
                    method,
                    url,
                    content=json.dumps(payload),
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            log.error("carrier_api.request_failed", error=str(exc))
            return ApiResult.fail(str(exc) or exc.__class__.__name__)

        elapsed_ms = round((time.monotonic() - start) * 1000, 2)

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None
            if response.is_success:
                log.error(
                    "carrier_api.malformed_body",
                    status_code=response.status_code,
                    elapsed_ms=elapsed_ms,
                )
                return ApiResult.fail("Malformed response body", response.status_code)

        if not response.is_success:
            log.error(
                "carrier_api.error_status",
                status_code=response.status_code,
                elapsed_ms=elapsed_ms,
                body=body,
            )
            return ApiResult.fail(
                f"API Error: {response.status_code}", response.status_code
            )

        log.info(
            "carrier_api.request_succeeded",
            status_code=response.status_code,
            elapsed_ms=elapsed_ms,
        )
        return ApiResult.ok(body, response.status_code)
