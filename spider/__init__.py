"""Same-site web spider built around a thread-safe crawl frontier."""

from .frontier import URLFrontier
from .predicates import (
    Predicate,
    RobotsRules,
    Seener,
    all_of,
    create_eligibility_predicate,
    create_is_internal_predicate,
    create_not_seen_predicate,
    create_should_request_by_robots_predicate,
)

__all__ = [
    "URLFrontier",
    "Predicate",
    "RobotsRules",
    "Seener",
    "all_of",
    "create_eligibility_predicate",
    "create_is_internal_predicate",
    "create_not_seen_predicate",
    "create_should_request_by_robots_predicate",
]
