"""Eligibility pipeline for discovered links.

Each constructor closes over its own configuration and returns a plain
callable from URL string to bool. A link is admitted to the frontier only
when the scope, not-seen and robots predicates all accept it.
"""

import logging
from typing import Callable, Optional, Protocol
from urllib.parse import urljoin, urlsplit

logger = logging.getLogger(__name__)

Predicate = Callable[[str], bool]


class Seener(Protocol):
    """Anything that can tell whether a URL was already enqueued."""

    def seen(self, url: str) -> bool:
        ...


class RobotsRules(Protocol):
    """Parsed robots.txt rules, e.g. ``urllib.robotparser.RobotFileParser``."""

    def can_fetch(self, useragent: str, url: str) -> bool:
        ...


def _hostname(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


def create_is_internal_predicate(root: str, include_subdomains: bool) -> Predicate:
    """Build the scope predicate for a crawl root.

    Only the host takes part in the comparison; scheme and port are ignored.
    Relative references resolve onto the root host and therefore match.

    Args:
        root: Crawl root URL
        include_subdomains: Also accept hosts ending in ``.<root host>``

    Returns:
        Predicate that is True for URLs on the root's site
    """
    root_host = _hostname(root)
    suffix = "." + root_host

    def is_internal(url: str) -> bool:
        host = _hostname(urljoin(root, url))
        if host == root_host:
            return True
        return include_subdomains and host.endswith(suffix)

    return is_internal


def create_not_seen_predicate(seener: Seener) -> Predicate:
    """Build the dedup predicate over a membership test."""

    def not_seen(url: str) -> bool:
        return not seener.seen(url)

    return not_seen


def create_should_request_by_robots_predicate(
    user_agent: str, rules: Optional[RobotsRules]
) -> Predicate:
    """Build the robots.txt predicate.

    Args:
        user_agent: Agent name the rules are evaluated for
        rules: Parsed rules, or None when no robots.txt was obtainable

    Returns:
        Predicate that is True when the URL path may be requested
    """
    if rules is None:
        return lambda url: True

    def should_request(url: str) -> bool:
        path = urlsplit(url).path or "/"
        allowed = rules.can_fetch(user_agent, path)
        if not allowed:
            logger.debug(f"Robots.txt disallows {url} for user-agent {user_agent}")
        return allowed

    return should_request


def all_of(*predicates: Predicate) -> Predicate:
    """Combine predicates with logical AND."""

    def combined(url: str) -> bool:
        return all(predicate(url) for predicate in predicates)

    return combined


def create_eligibility_predicate(
    root: str,
    include_subdomains: bool,
    seener: Seener,
    user_agent: str,
    rules: Optional[RobotsRules],
) -> Predicate:
    """Compose scope, dedup and robots checks into one admission test.

    The candidate is resolved against the root once, so every check sees the
    same canonical string the frontier stores.
    """
    check = all_of(
        create_is_internal_predicate(root, include_subdomains),
        create_not_seen_predicate(seener),
        create_should_request_by_robots_predicate(user_agent, rules),
    )

    def is_eligible(url: str) -> bool:
        return check(urljoin(root, url))

    return is_eligible
