import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import LimitsConfig

logger = logging.getLogger(__name__)

_FINAL_STATUSES = {403, 404, 410}
_HTML_TYPES = ("text/html", "application/xhtml+xml")


@dataclass
class FetchResult:
    url: str
    ok: bool
    status: int = 0
    content_type: str = ""
    html: str = ""
    error: Optional[str] = None
    retries: int = 0
    latency_ms: float = 0.0
    # URL that served the response after redirects; empty when nothing was received
    final_url: str = ""


class PageFetcher:
    """Blocking HTTP fetcher shared by the crawl worker threads.

    ``httpx.Client`` is thread-safe, so one instance serves every worker.
    """

    def __init__(
        self,
        user_agent: str,
        limits: Optional[LimitsConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.user_agent = user_agent
        self.limits = limits or LimitsConfig()
        self.client = self._create_http_client(transport)

        self.total_fetches = 0
        self.failed_fetches = 0
        self._stats_lock = threading.Lock()

    def _create_http_client(self, transport: Optional[httpx.BaseTransport]) -> httpx.Client:
        timeout = httpx.Timeout(
            connect=self.limits.connect_timeout_ms / 1000,
            read=self.limits.read_timeout_ms / 1000,
            write=self.limits.read_timeout_ms / 1000,
            pool=None,
        )
        return httpx.Client(
            timeout=timeout,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            follow_redirects=True,
            max_redirects=5,
            headers={
                "User-Agent": self.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
            transport=transport,
        )

    def _count_failure(self) -> None:
        with self._stats_lock:
            self.failed_fetches += 1

    def _backoff(self, retries: int) -> None:
        backoff_ms = min(self.limits.backoff_base_ms * (2 ** retries), self.limits.backoff_cap_ms)
        time.sleep(backoff_ms / 1000.0)

    def fetch(self, url: str) -> FetchResult:
        """Fetch a page, retrying transient failures.

        Args:
            url: Absolute URL to fetch

        Returns:
            FetchResult; ``html`` is empty unless the response is an HTML page
        """
        with self._stats_lock:
            self.total_fetches += 1
        retries = 0
        error = "Max retries exceeded"
        status = 0

        while retries <= self.limits.max_retries:
            start_time = time.time()
            try:
                response = self.client.get(url)
            except httpx.RequestError as e:
                error = str(e) or type(e).__name__
                logger.warning(f"Request error for {url}: {error}, attempt {retries + 1}/{self.limits.max_retries + 1}")
            else:
                latency_ms = (time.time() - start_time) * 1000
                status = response.status_code
                content_type = response.headers.get("content-type", "")
                final_url = str(response.url)

                if 200 <= status < 300:
                    html = ""
                    if content_type.lower().startswith(_HTML_TYPES):
                        html = response.text
                    else:
                        logger.debug(f"Non-HTML content type: {content_type} for {url}")
                    return FetchResult(
                        url=url,
                        ok=True,
                        status=status,
                        content_type=content_type,
                        html=html,
                        retries=retries,
                        latency_ms=latency_ms,
                        final_url=final_url,
                    )

                if status in _FINAL_STATUSES or (400 <= status < 500 and status != 429):
                    self._count_failure()
                    return FetchResult(
                        url=url,
                        ok=False,
                        status=status,
                        content_type=content_type,
                        error=f"HTTP {status}",
                        retries=retries,
                        latency_ms=latency_ms,
                        final_url=final_url,
                    )

                error = f"HTTP {status}"
                logger.warning(f"HTTP {status}: {url}, attempt {retries + 1}/{self.limits.max_retries + 1}")

            if retries >= self.limits.max_retries:
                break
            self._backoff(retries)
            retries += 1

        self._count_failure()
        return FetchResult(url=url, ok=False, status=status, error=error, retries=retries)

    def close(self) -> None:
        self.client.close()
        logger.info(f"Fetcher closed - fetches: {self.total_fetches}, failures: {self.failed_fetches}")

    def __enter__(self) -> 'PageFetcher':
        return self

    def __exit__(self, *exc) -> None:
        self.close()
