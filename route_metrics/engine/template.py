"""
Regroup a run's routes into the named buckets of a template.

Matching is not first-match-wins: a route satisfying several template rules
contributes all of its samples to every one of those buckets. Routes that
match nothing keep a bucket of their own, named by the raw route signature.
"""
import logging
from typing import Dict, List, Mapping

from route_metrics.common.models import (
    Template, TimesByStatus, parse_route_signature, status_sort_key
)

logger = logging.getLogger(__name__)


def matching_routes(template: Template, signature: str) -> List[str]:
    """Names of every template route the signature falls into, in template order."""
    props = parse_route_signature(signature)
    if props is None:
        logger.debug(f"Unparseable route signature {signature!r}")
        return []
    return [route.name for route in template.routes if route.matches(props.method, props.path)]


def _save_match(buckets: Dict[str, TimesByStatus], name: str, times_by_status: Mapping[str, list]):
    bucket = buckets.setdefault(name, {})
    for status, times in times_by_status.items():
        bucket.setdefault(status, []).extend(times)


def bucketize(metrics: Mapping[str, TimesByStatus], template: Template) -> Dict[str, TimesByStatus]:
    """
    Returns bucket name -> status -> samples. Template buckets come first in
    template order (only those that received samples), then the unmatched
    routes in ascending signature order. `metrics` is left untouched.
    """
    named: Dict[str, TimesByStatus] = {}
    raw: Dict[str, TimesByStatus] = {}

    for signature in sorted(metrics):
        times_by_status = metrics[signature]
        names = matching_routes(template, signature)
        for name in names:
            _save_match(named, name, times_by_status)
        if not names:
            _save_match(raw, signature, times_by_status)

    buckets: Dict[str, TimesByStatus] = {}
    for route in template.routes:
        if route.name in named and route.name not in buckets:
            buckets[route.name] = named[route.name]
    for signature, times_by_status in raw.items():
        # a raw signature that collides with a bucket name merges into it
        if signature in buckets:
            _save_match(buckets, signature, times_by_status)
        else:
            buckets[signature] = times_by_status

    return {
        name: {s: by_status[s] for s in sorted(by_status, key=status_sort_key)}
        for name, by_status in buckets.items()
    }
