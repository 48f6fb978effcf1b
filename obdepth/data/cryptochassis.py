"""crypto-chassis REST client — resolves and downloads daily market-depth files."""

from __future__ import annotations

import asyncio
import json
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from obdepth.core.errors import (
    MalformedResponseError,
    NoDataAvailableError,
    RateLimitExceededError,
    RemoteUnavailableError,
)
from obdepth.core.logging import get_logger
from obdepth.models.api import MarketDepthResponse

if TYPE_CHECKING:
    from datetime import date

    from obdepth.models.depth import Market, Pair

log = get_logger(__name__)

CRYPTOCHASSIS_API_URL = "https://api.cryptochassis.com/v1"
RATE_LIMIT_MARKER = "Too many requests, please try again later."


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for rate-limited requests."""

    max_attempts: int = 8
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based), with ±25% jitter."""
        delay = self.initial_backoff_seconds * (self.backoff_multiplier**attempt)
        if self.jitter:
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)
        return max(0.0, min(delay, self.max_backoff_seconds))


class _RateLimited(Exception):
    """Internal signal: the response was a rate-limit rejection."""


class CryptoChassisClient:
    """Async REST client for the crypto-chassis market-depth API.

    Implements the DepthSource protocol from obdepth.interfaces.
    """

    def __init__(
        self,
        base_url: str = CRYPTOCHASSIS_API_URL,
        timeout_seconds: float = 60.0,
        retry_policy: RetryPolicy | None = None,
        rate_limit_marker: str = RATE_LIMIT_MARKER,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._retry_policy = retry_policy or RetryPolicy()
        self._rate_limit_marker = rate_limit_marker
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_seconds),
                follow_redirects=True,
            )
        return self._client

    async def resolve_download_url(self, market: Market, pair: Pair, day: date) -> str:
        """Return the signed download URL of one day of depth data.

        Raises:
            RateLimitExceededError: the API kept rate limiting past the retry budget.
            MalformedResponseError: the body is neither JSON nor a rate-limit notice.
            NoDataAvailableError: the API has no file for that day.
        """
        url = f"{self._base_url}/market-depth/{market.value}/{pair}"
        params = {"startTime": day.isoformat()}

        policy = self._retry_policy
        for attempt in range(policy.max_attempts):
            try:
                payload = await self._get_metadata(url, params)
            except _RateLimited:
                if attempt == policy.max_attempts - 1:
                    break
                delay = policy.delay_for(attempt)
                log.warning(
                    "cryptochassis.rate_limited",
                    market=market.value,
                    pair=str(pair),
                    day=day.isoformat(),
                    attempt=attempt + 1,
                    max_attempts=policy.max_attempts,
                    retry_in=round(delay, 2),
                )
                await asyncio.sleep(delay)
                continue

            try:
                response = MarketDepthResponse.model_validate(payload)
            except ValidationError as e:
                msg = f"Unexpected market-depth payload for {pair} {day}: {e}"
                raise MalformedResponseError(msg) from e

            if not response.urls:
                msg = f"No depth data available for {market.value} {pair} on {day}"
                raise NoDataAvailableError(msg)
            return response.urls[0].url

        msg = (
            f"Rate limit retries exhausted after {policy.max_attempts} attempts "
            f"for {market.value} {pair} on {day}"
        )
        raise RateLimitExceededError(msg)

    async def download(self, url: str) -> bytes:
        """Fetch the raw (gzip-compressed) body behind a signed URL."""
        client = await self._get_client()
        try:
            resp = await client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            msg = f"Depth file download failed: {e}"
            raise RemoteUnavailableError(msg) from e
        log.debug("cryptochassis.downloaded", bytes=len(resp.content))
        return resp.content

    async def _get_metadata(self, url: str, params: dict[str, str]) -> object:
        client = await self._get_client()
        try:
            resp = await client.get(url, params=params)
        except httpx.HTTPError as e:
            msg = f"Market-depth request failed: {e}"
            raise RemoteUnavailableError(msg) from e

        if resp.status_code == 429:
            raise _RateLimited

        try:
            payload = json.loads(resp.text)
        except json.JSONDecodeError as e:
            if self._rate_limit_marker in resp.text:
                raise _RateLimited from e
            if resp.is_error:
                msg = f"Market-depth request failed with HTTP {resp.status_code}"
                raise RemoteUnavailableError(msg) from e
            msg = f"Market-depth response is not JSON: {resp.text[:200]!r}"
            raise MalformedResponseError(msg) from e

        if resp.is_error:
            msg = f"Market-depth request failed with HTTP {resp.status_code}: {payload}"
            raise RemoteUnavailableError(msg)
        return payload

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
