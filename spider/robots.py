"""Robots.txt retrieval for the crawl root.

Turns whatever the site serves at /robots.txt into either a parsed rule set
or None, which the robots predicate treats as allow-all.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit, urlunsplit
from urllib.robotparser import RobotFileParser

import httpx

logger = logging.getLogger(__name__)


def robots_url(root: str) -> str:
    parts = urlsplit(root)
    return urlunsplit((parts.scheme, parts.netloc, "/robots.txt", "", ""))


def rules_from_text(text: str, url: str = "") -> RobotFileParser:
    """Parse robots.txt content into a rule set."""
    parser = RobotFileParser()
    if url:
        parser.set_url(url)
    parser.parse(text.splitlines())
    return parser


def _disallow_all(url: str) -> RobotFileParser:
    parser = RobotFileParser()
    parser.set_url(url)
    parser.disallow_all = True
    return parser


class RobotsLoader:
    """Fetch and parse robots.txt for a site."""

    def __init__(
        self,
        user_agent: str,
        timeout_sec: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize robots loader.

        Args:
            user_agent: User-Agent header sent with the request
            timeout_sec: Request timeout in seconds
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.user_agent = user_agent
        self.timeout_sec = timeout_sec
        self._transport = transport

    def load(self, root: str) -> Optional[RobotFileParser]:
        """Fetch robots.txt for the host of ``root``.

        Status handling:
            2xx: parse the body
            4xx: no usable rules, allow everything (None)
            5xx: server trouble, disallow everything

        Network errors are logged and treated like a missing file.

        Args:
            root: Any URL on the site, usually the crawl root

        Returns:
            Parsed rules, or None when every path is allowed
        """
        url = robots_url(root)
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/plain, */*",
        }

        try:
            with httpx.Client(
                timeout=self.timeout_sec,
                follow_redirects=True,
                max_redirects=3,
                transport=self._transport,
            ) as client:
                response = client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Error fetching robots.txt from {url}: {e}")
            return None

        status = response.status_code
        if 200 <= status < 300:
            parser = rules_from_text(response.text, url)
            logger.info(f"Fetched robots.txt from {url}: {len(response.text.splitlines())} lines")
            return parser
        if 400 <= status < 500:
            logger.info(f"No robots.txt at {url} (HTTP {status}), allowing all")
            return None
        if status >= 500:
            logger.warning(f"robots.txt returned HTTP {status} for {url}, disallowing all")
            return _disallow_all(url)

        logger.warning(f"Unexpected HTTP {status} for {url}, allowing all")
        return None
