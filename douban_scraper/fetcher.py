"""HTTP fetch engine for subject pages: id validation, timeouts, retries with jittered backoff."""

import asyncio
import logging
import random
import re
from typing import Awaitable, Callable, Optional

import httpx

from .config import FetchConfig
from .errors import (
    AntiBotError,
    FetchError,
    FetchExhaustedError,
    FetchTimeout,
    HTTPStatusFetchError,
    InvalidContentError,
    InvalidIdError,
    NetworkError,
    ParseError,
    UnexpectedFetchError,
)
from .extractor import DetailExtractor
from .models import DetailsResult

logger = logging.getLogger("douban_scraper")

DOUBAN_ID_PATTERN = re.compile(r"\d+", re.ASCII)

ANTI_BOT_STATUSES = {403, 429}

# Sanity check markers for a real subject page
EXPECTED_MARKER = "douban.com"
ERROR_MARKERS = ("403 Forbidden", "404")


def validate_douban_id(douban_id: Optional[str]) -> str:
    if douban_id is None or not DOUBAN_ID_PATTERN.fullmatch(douban_id):
        raise InvalidIdError(douban_id)
    return douban_id


def check_page_content(html: str) -> None:
    if EXPECTED_MARKER not in html or any(marker in html for marker in ERROR_MARKERS):
        raise InvalidContentError()


class DoubanFetcher:
    """Fetches one subject page and hands it to the extractor.

    Every failure, whatever its class, is retried until max_attempts is
    spent. Between attempts it sleeps retry_delays[attempt - 1] plus up to
    retry_jitter seconds of random jitter. No sleep follows the last attempt.
    """

    def __init__(self, config: FetchConfig, extractor: Optional[DetailExtractor] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.config = config
        self.extractor = extractor or DetailExtractor()
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=True,
                headers=self.config.headers,
                transport=self._transport,
            )
        return self._client

    async def aclose(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "DoubanFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    def subject_url(self, douban_id: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{douban_id}/"

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after a failed attempt (1-based) before the next one."""
        return self.config.retry_delays[attempt - 1] + random.random() * self.config.retry_jitter

    async def fetch_details(self, douban_id: Optional[str]) -> DetailsResult:
        """Fetch and parse a subject. Raises InvalidIdError or FetchExhaustedError."""
        douban_id = validate_douban_id(douban_id)
        max_attempts = self.config.max_attempts
        logger.info(f"[fetch] Start id={douban_id} url={self.subject_url(douban_id)}")

        last_error: Optional[FetchError] = None
        for attempt in range(1, max_attempts + 1):
            logger.info(f"[fetch] Attempt {attempt}/{max_attempts} for {douban_id}")
            try:
                html = await self.fetch_page(douban_id, attempt)
                result = self._parse(html, douban_id)
                logger.info(f"[fetch] Success id={douban_id} on attempt {attempt}")
                return result
            except FetchError as e:
                last_error = e
                logger.warning(f"[fetch] Attempt {attempt} failed ({type(e).__name__}): {e}")
            except Exception as e:
                last_error = UnexpectedFetchError(e)
                logger.exception(f"[fetch] Attempt {attempt} failed unexpectedly: {last_error}")

            if attempt < max_attempts:
                delay = self.backoff_delay(attempt)
                logger.info(f"[fetch] Waiting {delay:.2f}s before attempt {attempt + 1}")
                await self._sleep(delay)

        logger.error(f"[fetch] All {max_attempts} attempts failed for {douban_id}")
        raise FetchExhaustedError(douban_id, max_attempts, last_error)

    async def fetch_page(self, douban_id: str, attempt: int = 1) -> str:
        """One GET of the subject page. Returns the HTML or raises a FetchError subclass."""
        url = self.subject_url(douban_id)
        try:
            resp = await asyncio.wait_for(self.client.get(url), timeout=self.config.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FetchTimeout(f"Request timed out after {self.config.timeout}s") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Network failure: {type(e).__name__}: {e}") from e

        logger.info(f"[fetch] Response status {resp.status_code} (attempt {attempt})")

        if resp.status_code in ANTI_BOT_STATUSES:
            logger.warning(f"[fetch] Anti-bot response {resp.status_code} (attempt {attempt})")
            raise AntiBotError(resp.status_code, resp.reason_phrase)
        if not resp.is_success:
            raise HTTPStatusFetchError(resp.status_code, resp.reason_phrase)

        html = resp.text
        logger.info(f"[fetch] Got HTML, length {len(html)} (attempt {attempt})")
        check_page_content(html)
        return html

    def _parse(self, html: str, douban_id: str) -> DetailsResult:
        try:
            return self.extractor.extract(html, douban_id)
        except Exception as e:
            raise ParseError(f"解析失败: {e}") from e
