"""In-memory crawl frontier.

Keeps a LIFO stack of URLs waiting to be fetched together with the set of
every URL ever enqueued. The stack order gives a depth-first crawl.
"""

import logging
from typing import List, Optional, Set

from .rwlock import ReadWriteLock

logger = logging.getLogger(__name__)


class URLFrontier:
    """Thread-safe pending-URL stack plus a monotonic seen set.

    The frontier applies no policy of its own: ``enqueue`` will push a URL
    that was already seen. Filtering belongs to the eligibility pipeline in
    :mod:`spider.predicates`.
    """

    def __init__(self):
        self._urls: List[str] = []
        self._seen: Set[str] = set()
        self._lock = ReadWriteLock()

    def seen(self, url: str) -> bool:
        """Check if URL was ever enqueued.

        Args:
            url: Canonical URL string

        Returns:
            True if URL is in the seen set
        """
        with self._lock.read_locked():
            return url in self._seen

    def enqueue(self, url: str) -> None:
        """Push URL onto the pending stack and mark it seen.

        Both updates happen under one write lock, so no reader can observe
        a URL that is pending but not yet seen.

        Args:
            url: Canonical URL string
        """
        with self._lock.write_locked():
            self._urls.append(url)
            self._seen.add(url)
        logger.debug(f"Enqueued: {url}")

    def dequeue(self) -> Optional[str]:
        """Pop the most recently enqueued URL.

        Returns:
            Next URL to crawl, or None if nothing is pending
        """
        with self._lock.write_locked():
            if not self._urls:
                return None
            return self._urls.pop()

    def pending_count(self) -> int:
        with self._lock.read_locked():
            return len(self._urls)

    def seen_count(self) -> int:
        with self._lock.read_locked():
            return len(self._seen)

    def is_empty(self) -> bool:
        """Check if no URLs are pending."""
        return self.pending_count() == 0
