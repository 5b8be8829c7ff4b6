"""Niche search: city x niche candidates scored against keyword metrics.

Flow:
  1. resolve the city set (explicit city, or population-filtered sample)
  2. resolve the niche set (explicit niche, or sample)
  3. walk the cross product city-major, niche-minor
  4. per candidate: keyword -> metrics -> range filter -> domain checks
  5. stop at MAX_RESULTS
"""

from __future__ import annotations

import itertools
import logging
import time

from nichefinder.config import (
    CITY_SAMPLE_SIZE,
    MAX_RESULTS,
    NICHE_SAMPLE_SIZE,
    SINGLE_CITY_NICHE_SAMPLE_SIZE,
)
from nichefinder.db import STORE_ERRORS, list_cities, list_niches
from nichefinder.domains import check_domain_availability, registration_link
from nichefinder.metrics import fetch_keyword_metrics
from nichefinder.models import City, KeywordResult, Niche, SearchCriteria

logger = logging.getLogger(__name__)


class SearchError(Exception):
    """The search could not run at all (city/niche lists unavailable)."""


def build_keyword(city: str, niche: str, location_first: bool) -> str:
    """Lower-cased, single-spaced keyword for a candidate.

    >>> build_keyword("Austin", "Plumber", location_first=True)
    'austin plumber'
    >>> build_keyword("Austin", "Plumber", location_first=False)
    'plumber austin'
    """
    words = f"{city} {niche}" if location_first else f"{niche} {city}"
    return " ".join(words.lower().split())


def build_domain_base(city: str, niche: str, location_first: bool) -> str:
    """Exact-match domain name without TLD, e.g. "austinplumber"."""
    return "".join(build_keyword(city, niche, location_first).split())


def search_niches(
    criteria: SearchCriteria, max_results: int = MAX_RESULTS
) -> list[KeywordResult]:
    """Run a niche search.

    Results follow traversal order and never exceed ``max_results``.
    Candidates whose lookup fails or whose metrics fall outside the
    criteria ranges are left out silently.

    Raises:
        SearchError: the city or niche list could not be loaded.
    """
    start_time = time.time()
    cities = resolve_cities(criteria)
    niches = resolve_niches(criteria)
    logger.info("search start: cities=%d, niches=%d, location_first=%s",
                len(cities), len(niches), criteria.location_first)

    results: list[KeywordResult] = []
    evaluated = 0
    for city, niche in itertools.product(cities, niches):
        if len(results) >= max_results:
            break
        evaluated += 1
        try:
            result = evaluate_candidate(city, niche, criteria)
        except Exception:
            logger.exception("candidate skipped: city=%s, niche=%s", city.name, niche.name)
            continue
        if result is not None:
            results.append(result)

    logger.info("search done: evaluated=%d, accepted=%d, elapsed=%.1fs",
                evaluated, len(results), time.time() - start_time)
    return results


def resolve_cities(criteria: SearchCriteria) -> list[City]:
    """Cities to search. An explicit city outside the population range yields none."""
    population = criteria.population
    if criteria.city is not None:
        if population is not None and not population.contains(criteria.city.population):
            logger.info("selected city %s outside population range", criteria.city.name)
            return []
        return [criteria.city]

    try:
        rows = list_cities(
            population_min=int(population.min) if population else None,
            population_max=int(population.max) if population else None,
            limit=CITY_SAMPLE_SIZE,
        )
    except STORE_ERRORS as e:
        logger.exception("failed to load cities")
        raise SearchError(f"could not load cities: {e}") from e
    cities = [City.from_row(row) for row in rows]
    if population is not None:
        cities = [c for c in cities if population.contains(c.population)]
    return cities


def resolve_niches(criteria: SearchCriteria) -> list[Niche]:
    """Niches to search. A lone selected city widens the niche sample."""
    if criteria.niche is not None:
        return [criteria.niche]

    limit = SINGLE_CITY_NICHE_SAMPLE_SIZE if criteria.city is not None else NICHE_SAMPLE_SIZE
    try:
        rows = list_niches(limit=limit)
    except STORE_ERRORS as e:
        logger.exception("failed to load niches")
        raise SearchError(f"could not load niches: {e}") from e
    return [Niche.from_row(row) for row in rows]


def evaluate_candidate(
    city: City, niche: Niche, criteria: SearchCriteria
) -> KeywordResult | None:
    """Score one city x niche pair.

    Returns:
        KeywordResult, or None if the metrics fall outside the criteria.
    """
    keyword = build_keyword(city.name, niche.name, criteria.location_first)
    domain_base = build_domain_base(city.name, niche.name, criteria.location_first)

    metrics = fetch_keyword_metrics(keyword)
    if not (criteria.search_volume.contains(metrics.search_volume)
            and criteria.cpc.contains(metrics.cpc)):
        logger.debug("rejected: keyword=%s, volume=%d, cpc=%.2f",
                     keyword, metrics.search_volume, metrics.cpc)
        return None

    checks = check_domain_availability(domain_base)
    logger.info("accepted: keyword=%s, volume=%d, cpc=%.2f",
                keyword, metrics.search_volume, metrics.cpc)
    return KeywordResult(
        id=f"{city.id}-{niche.id}",
        keyword=keyword,
        search_volume=metrics.search_volume,
        cpc=metrics.cpc,
        population=city.population,
        exact_match_domain=domain_base,
        domain_status={tld: check.available for tld, check in checks.items()},
        domain_links={tld: registration_link(check) for tld, check in checks.items()},
        metrics_outcome=metrics.outcome,
    )
