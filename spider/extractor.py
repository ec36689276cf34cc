"""HTML link extractor.

Pulls anchor hrefs out of a page, resolves them against the page URL,
drops fragments and de-duplicates. Scope decisions are left to the
eligibility pipeline.
"""

import html
import logging
import re
from typing import List
from urllib.parse import urljoin, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

_HREF_RE = re.compile(
    r"""<a\s+[^>]*?href\s*=\s*(?:["']([^"']+)["']|([^\s>]+))""",
    re.IGNORECASE | re.DOTALL,
)
_SKIP_PREFIXES = ("#", "javascript:", "mailto:", "tel:")


class LinkExtractor:
    """Extract absolute http(s) links from HTML pages."""

    def extract(self, html_content: str, base_url: str) -> List[str]:
        """Extract all valid HTTP(S) URLs from HTML content.

        Args:
            html_content: HTML content as string
            base_url: Page URL used to resolve relative links

        Returns:
            List of absolute URLs (deduplicated, order-preserving)
        """
        if not html_content or not base_url:
            return []

        seen = set()
        results = []

        for match in _HREF_RE.finditer(html_content):
            href = html.unescape(match.group(1) or match.group(2)).strip()

            if not href or href.lower().startswith(_SKIP_PREFIXES):
                continue

            try:
                absolute = urljoin(base_url, href)
                parts = urlsplit(absolute)
            except ValueError:
                logger.debug(f"Skipping malformed href {href!r} on {base_url}")
                continue

            if parts.scheme not in ("http", "https") or not parts.netloc:
                continue

            url = urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))
            if url not in seen:
                seen.add(url)
                results.append(url)

        logger.debug(f"Extracted {len(results)} links from {base_url}")
        return results
