import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urljoin

from .config import SpiderConfig
from .extractor import LinkExtractor
from .fetcher import PageFetcher
from .frontier import URLFrontier
from .predicates import Predicate, create_eligibility_predicate
from .robots import RobotsLoader

logger = logging.getLogger(__name__)


@dataclass
class PageRecord:
    url: str
    status: int
    ok: bool
    links: List[str] = field(default_factory=list)
    error: Optional[str] = None
    final_url: str = ""


class SpiderService:
    """Crawl loop: dequeue, fetch, extract, filter, enqueue.

    Worker threads share one frontier. A worker that finds the frontier empty
    keeps polling while other workers are still fetching, since they may
    discover more links; once nothing is pending and nothing is in flight the
    crawl is over.
    """

    poll_interval = 0.05

    def __init__(
        self,
        config: SpiderConfig,
        fetcher: Optional[PageFetcher] = None,
        robots_loader: Optional[RobotsLoader] = None,
        extractor: Optional[LinkExtractor] = None,
    ):
        self.config = config
        self.frontier = URLFrontier()
        self.fetcher = fetcher
        self._owns_fetcher = fetcher is None
        self.robots_loader = robots_loader
        self.extractor = extractor or LinkExtractor()

        self.rules = None
        self.is_eligible: Optional[Predicate] = None
        self.records: List[PageRecord] = []

        self.stats = {
            "pages_fetched": 0,
            "fetch_errors": 0,
            "links_discovered": 0,
            "links_enqueued": 0,
            "links_rejected": 0,
            "redirects_skipped": 0,
        }

        self._state_lock = threading.Lock()
        self._admit_lock = threading.Lock()
        self._in_flight = 0
        self._dispatched = 0
        self._stop = threading.Event()

    def start(self) -> None:
        """Load robots.txt, build the eligibility predicate and seed the root."""
        cfg = self.config

        if self.fetcher is None:
            self.fetcher = PageFetcher(cfg.user_agent, cfg.limits)

        if cfg.robots.enabled:
            loader = self.robots_loader or RobotsLoader(cfg.user_agent, cfg.robots.timeout_sec)
            self.rules = loader.load(cfg.root_url)
        else:
            logger.info("Robots.txt checks disabled")

        self.is_eligible = create_eligibility_predicate(
            cfg.root_url,
            cfg.include_subdomains,
            self.frontier,
            cfg.user_agent,
            self.rules,
        )

        if self._admit(cfg.root_url):
            logger.info(f"Seeded frontier with {cfg.root_url}")
        else:
            logger.warning(f"Root URL {cfg.root_url} is not eligible (robots.txt?), nothing to crawl")

    def run(self) -> List[PageRecord]:
        """Crawl until the frontier is exhausted, max_pages is hit or stop() is called.

        Returns:
            One record per fetched URL, in completion order
        """
        if self.is_eligible is None:
            self.start()

        workers = self.config.workers
        logger.info(f"Starting crawl of {self.config.root_url} with {workers} workers")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="spider") as pool:
            futures = [pool.submit(self._worker) for _ in range(workers)]
            try:
                for future in futures:
                    future.result()
            except KeyboardInterrupt:
                logger.info("Crawl interrupted")
                self.stop()
                raise

        logger.info("=== Crawl Statistics ===")
        for key, value in self.stats.items():
            logger.info(f"  {key}: {value}")

        return list(self.records)

    def stop(self) -> None:
        self._stop.set()

    def close(self) -> None:
        if self._owns_fetcher and self.fetcher is not None:
            self.fetcher.close()

    def _limit_reached(self) -> bool:
        return bool(self.config.max_pages) and self._dispatched >= self.config.max_pages

    def _next_url(self):
        """Dequeue under the state lock.

        Returns:
            (url, done): url is None when nothing is pending right now; done is
            True when no more work can appear
        """
        with self._state_lock:
            if self._limit_reached():
                return None, True
            url = self.frontier.dequeue()
            if url is None:
                return None, self._in_flight == 0
            self._in_flight += 1
            self._dispatched += 1
            return url, False

    def _worker(self) -> None:
        while not self._stop.is_set():
            url, done = self._next_url()
            if done:
                break
            if url is None:
                time.sleep(self.poll_interval)
                continue

            try:
                self._process_url(url)
            except Exception as e:
                logger.error(f"Error processing {url}: {e}", exc_info=True)
                self._bump("fetch_errors")
            finally:
                with self._state_lock:
                    self._in_flight -= 1

    def _process_url(self, url: str) -> None:
        logger.info(f"Processing: {url}")
        result = self.fetcher.fetch(url)
        final_url = result.final_url or url

        if not result.ok:
            logger.warning(f"Failed to fetch {url}: {result.error}")
            self._bump("fetch_errors")
            self._record(PageRecord(
                url=url, status=result.status, ok=False, error=result.error, final_url=final_url
            ))
            return

        # A redirect target is treated like a discovered link: off-site,
        # robots-disallowed or already-seen targets are not processed here.
        if final_url != url and not self.is_eligible(final_url):
            logger.info(f"Skipping {url}: redirected to ineligible {final_url}")
            self._bump("redirects_skipped")
            self._record(PageRecord(
                url=url,
                status=result.status,
                ok=False,
                error=f"Redirected to {final_url}",
                final_url=final_url,
            ))
            return

        self._bump("pages_fetched")
        links = self.extractor.extract(result.html, final_url) if result.html else []
        self._bump("links_discovered", len(links))

        for link in links:
            if self._admit(link):
                self._bump("links_enqueued")
            else:
                self._bump("links_rejected")

        self._record(PageRecord(
            url=url, status=result.status, ok=True, links=links, final_url=final_url
        ))

    def _admit(self, url: str) -> bool:
        url = urljoin(self.config.root_url, url)
        # Predicate and enqueue must not interleave with another worker's,
        # or two workers could both see a link as new and push it twice.
        with self._admit_lock:
            if not self.is_eligible(url):
                return False
            self.frontier.enqueue(url)
            return True

    def _bump(self, key: str, amount: int = 1) -> None:
        with self._state_lock:
            self.stats[key] += amount

    def _record(self, record: PageRecord) -> None:
        with self._state_lock:
            self.records.append(record)
