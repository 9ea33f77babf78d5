"""HTTP client with retry and timeout support for static page fetching."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import httpx

from .logging_config import get_logger

logger = get_logger("http_client")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class FetchConfig:
    """Timeout and retry settings for :class:`HTTPClient`."""

    timeout_seconds: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_exponential_base: float = 2.0
    retry_max_delay: float = 30.0
    headers: Dict[str, str] = field(default_factory=dict)


class HTTPClient:
    """Synchronous httpx wrapper with retry logic, timeout, and exponential backoff."""

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or FetchConfig()
        self.timeout = httpx.Timeout(
            connect=10.0,
            read=self.config.timeout_seconds,
            write=10.0,
            pool=5.0,
        )
        self.headers = {
            "User-Agent": DEFAULT_USER_AGENT,
            "Accept-Language": "en-US,en;q=0.9",
            **self.config.headers,
        }
        self.transport = transport
        self._sleep = sleep
        self.request_count = 0
        self.retry_count = 0

    def get(
        self,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        follow_redirects: bool = True,
    ) -> httpx.Response:
        merged_headers = {**self.headers, **(headers or {})}

        with httpx.Client(
            timeout=self.timeout,
            follow_redirects=follow_redirects,
            transport=self.transport,
        ) as client:
            for attempt in range(self.config.max_retries + 1):
                self.request_count += 1
                try:
                    response = client.get(url, headers=merged_headers, params=params)
                    response.raise_for_status()
                    return response

                except httpx.HTTPStatusError as exc:
                    status_code = exc.response.status_code
                    if self._should_retry_status(status_code) and attempt < self.config.max_retries:
                        delay = self._calculate_retry_delay(attempt + 1)
                        self.retry_count += 1
                        logger.warning(
                            "GET %s failed with status %s. Retrying in %.2fs (attempt %s/%s)",
                            url,
                            status_code,
                            delay,
                            attempt + 1,
                            self.config.max_retries,
                        )
                        self._sleep(delay)
                        continue

                    logger.error("GET %s failed with status %s: %s", url, status_code, exc)
                    raise

                except httpx.RequestError as exc:
                    if attempt < self.config.max_retries:
                        delay = self._calculate_retry_delay(attempt + 1)
                        self.retry_count += 1
                        logger.warning(
                            "GET %s failed (%s). Retrying in %.2fs (attempt %s/%s)",
                            url,
                            exc,
                            delay,
                            attempt + 1,
                            self.config.max_retries,
                        )
                        self._sleep(delay)
                        continue

                    logger.error("GET %s failed after %s attempts: %s", url, attempt + 1, exc)
                    raise

        raise RuntimeError(f"GET {url} failed after retries")

    def _should_retry_status(self, status_code: int) -> bool:
        if status_code >= 500:
            return True
        return status_code in {408, 409, 425, 429}

    def _calculate_retry_delay(self, retry_number: int) -> float:
        delay = self.config.retry_base_delay * (
            self.config.retry_exponential_base ** (retry_number - 1)
        )
        return min(delay, self.config.retry_max_delay)
