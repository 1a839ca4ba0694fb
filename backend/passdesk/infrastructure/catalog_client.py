"""
Client for the upstream event catalog API.

Each fetch carries a timeout and is retried with exponential backoff:
delay = base_delay * 2 ** (attempt - 1).
"""

import asyncio
from typing import Any, Awaitable, Callable

import httpx

from passdesk.core.logging import get_logger
from passdesk.core.metrics import record_upstream_call

logger = get_logger(__name__)

USER_AGENT = "PassDesk-Backend/1.0"


class CatalogFetchError(Exception):
    pass


class CatalogClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        url: str,
        timeout: float = 10.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.http = http
        self.url = url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self._sleep = sleep

    async def fetch(self) -> dict:
        """Fetch the catalog JSON document, raising CatalogFetchError after the last attempt."""
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self.http.get(
                    self.url,
                    timeout=self.timeout,
                    headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
                )
                response.raise_for_status()
                payload = response.json()
            except httpx.TimeoutException as e:
                record_upstream_call("catalog", "timeout")
                error = e
            except httpx.HTTPStatusError as e:
                record_upstream_call("catalog", "http_error")
                error = e
            except (httpx.HTTPError, ValueError) as e:
                # ValueError covers an undecodable body
                record_upstream_call("catalog", "transport_error")
                error = e
            else:
                record_upstream_call("catalog", "success")
                logger.info("catalog_fetched", attempt=attempt)
                return payload

            logger.warning(
                "catalog_fetch_failed",
                attempt=attempt,
                max_retries=self.max_retries,
                error=str(error) or type(error).__name__,
            )
            if attempt == self.max_retries:
                raise CatalogFetchError(
                    f"failed to fetch catalog after {self.max_retries} attempts: {error}"
                ) from error

            delay = self.base_delay * 2 ** (attempt - 1)
            logger.info("catalog_fetch_retry", delay_seconds=delay)
            await self._sleep(delay)

        # Should not reach here: the last attempt either returns or raises
        raise CatalogFetchError("catalog fetch did not run")
