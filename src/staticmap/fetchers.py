"""Tile fetch strategies: concurrent HTTP and an offline placeholder."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol, Sequence

import requests

from .config import FetcherConfig
from .errors import TileError


_RETRYABLE_HTTP_STATUS = {403, 429, 500, 502, 503, 504}
_MAX_RETRY_DELAY_S = 300.0

# 1x1 grey-alpha PNG served for every tile by the offline fetcher.
PLACEHOLDER_PNG = bytes(
    [
        137, 80, 78, 71, 13, 10, 26, 10, 0, 0, 0, 13, 73, 72, 68, 82, 0, 0, 0, 1, 0, 0, 0, 1,
        8, 4, 0, 0, 0, 181, 28, 12, 2, 0, 0, 0, 11, 73, 68, 65, 84, 120, 218, 99, 100, 96, 0,
        0, 0, 6, 0, 2, 48, 129, 208, 47, 0, 0, 0, 0, 73, 69, 78, 68, 174, 66, 96, 130,
    ]
)

_LOGGER = logging.getLogger("staticmap.fetchers")

TileResult = bytes | TileError


class TileFetcher(Protocol):
    def fetch(self, urls: Sequence[str]) -> list[TileResult]:
        """Return one result per URL, in the same order as ``urls``."""
        ...


class NoopTileFetcher:
    """Serve a fixed placeholder image without touching the network."""

    def fetch(self, urls: Sequence[str]) -> list[TileResult]:
        _LOGGER.debug("Serving %d placeholder tiles", len(urls))
        return [PLACEHOLDER_PNG for _ in urls]


class HttpTileFetcher:
    """Download tiles in parallel worker threads with a shared HTTP session."""

    def __init__(
        self,
        cfg: FetcherConfig | None = None,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self.cfg = cfg or FetcherConfig()
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": self.cfg.user_agent})
        self._max_retries = max(int(self.cfg.max_retries), 0)
        self._retry_backoff_s = max(float(self.cfg.retry_backoff_s), 0.01)

    def fetch(self, urls: Sequence[str]) -> list[TileResult]:
        if not urls:
            return []
        started = time.monotonic()
        with ThreadPoolExecutor(max_workers=self.cfg.max_workers) as executor:
            results = list(executor.map(self._fetch_one, urls))
        failed = sum(1 for result in results if isinstance(result, TileError))
        _LOGGER.info(
            "Fetched %d tiles in %.2fs (%d failed)",
            len(urls),
            time.monotonic() - started,
            failed,
        )
        return results

    def close(self) -> None:
        self._session.close()

    def _fetch_one(self, url: str) -> TileResult:
        try:
            response = self._request_get(url)
        except requests.RequestException as exc:
            _LOGGER.debug("Tile request failed for %s: %s", url, exc)
            return TileError(url, exc)
        return response.content

    def _request_get(self, url: str) -> requests.Response:
        attempts = self._max_retries + 1
        for attempt in range(attempts):
            response = self._session.get(url, timeout=self.cfg.request_timeout_s)
            if response.status_code not in _RETRYABLE_HTTP_STATUS:
                response.raise_for_status()
                return response
            if attempt >= self._max_retries:
                response.raise_for_status()
            delay_s = self._compute_retry_delay_s(response=response, attempt=attempt)
            _LOGGER.warning(
                "Retryable response %s for %s; retrying in %.1fs (%d/%d)",
                response.status_code,
                url,
                delay_s,
                attempt + 1,
                self._max_retries,
            )
            response.close()
            time.sleep(delay_s)
        raise RuntimeError("Unreachable retry loop in tile fetcher")

    def _compute_retry_delay_s(self, *, response: requests.Response, attempt: int) -> float:
        retry_after_s = _parse_retry_after_seconds(response.headers.get("Retry-After"))
        exponential_s = self._retry_backoff_s * (2**attempt)
        return min(max(exponential_s, retry_after_s), _MAX_RETRY_DELAY_S)


def build_fetcher(cfg: FetcherConfig, *, offline: bool = False) -> TileFetcher:
    if offline or cfg.mode == "noop":
        return NoopTileFetcher()
    return HttpTileFetcher(cfg)


def _parse_retry_after_seconds(raw: str | None) -> float:
    if raw is None:
        return 0.0
    value = raw.strip()
    if not value:
        return 0.0
    try:
        parsed = float(value)
    except ValueError:
        return 0.0
    return max(parsed, 0.0)
