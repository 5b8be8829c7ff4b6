"""Unit tests for the search module."""

from unittest.mock import patch

import httpx
import pytest

from nichefinder.models import (
    City,
    DomainAvailability,
    KeywordMetrics,
    Niche,
    Outcome,
    Range,
    SearchCriteria,
)
from nichefinder.search import (
    SearchError,
    build_domain_base,
    build_keyword,
    search_niches,
)

AUSTIN = City(id=1, name="Austin", state="TX", population=500_000)

CITY_ROWS = [
    {"id": 1, "name": "Houston", "state": "TX", "population": 2_300_000},
    {"id": 2, "name": "Austin", "state": "TX", "population": 961_855},
    {"id": 3, "name": "Boise", "state": "ID", "population": 235_684},
]
NICHE_ROWS = [
    {"id": 10, "name": "Electrician"},
    {"id": 11, "name": "Plumber"},
    {"id": 12, "name": "Tree Service"},
]


def _criteria(**overrides) -> SearchCriteria:
    values = {
        "search_volume": Range(0, 1_000_000),
        "cpc": Range(0, 1000),
    }
    values.update(overrides)
    return SearchCriteria(**values)


def _checks(base: str, com=True, net=False, org=False) -> dict:
    return {
        "com": DomainAvailability(domain=f"{base}.com", available=com),
        "net": DomainAvailability(domain=f"{base}.net", available=net),
        "org": DomainAvailability(domain=f"{base}.org", available=org),
    }


class TestBuildKeyword:
    """Tests for build_keyword / build_domain_base."""

    def test_niche_first(self):
        assert build_keyword("Austin", "Plumber", location_first=False) == "plumber austin"
        assert build_domain_base("Austin", "Plumber", location_first=False) == "plumberaustin"

    def test_location_first(self):
        assert build_keyword("Austin", "Plumber", location_first=True) == "austin plumber"
        assert build_domain_base("Austin", "Plumber", location_first=True) == "austinplumber"

    def test_multi_word_names(self):
        assert build_keyword("San  Antonio", " Tree Service", False) == "tree service san antonio"
        assert build_domain_base("San  Antonio", " Tree Service", False) == "treeservicesanantonio"


@patch("nichefinder.search.check_domain_availability")
@patch("nichefinder.search.fetch_keyword_metrics")
@patch("nichefinder.search.list_niches")
@patch("nichefinder.search.list_cities")
class TestSearchNiches:
    """Tests for search_niches."""

    def test_single_city_scenario(self, mock_cities, mock_niches, mock_metrics, mock_domains):
        """One city, no niche: every niche evaluated in order, filtered by metrics."""
        mock_niches.return_value = NICHE_ROWS
        mock_metrics.side_effect = [
            KeywordMetrics(search_volume=900, cpc=12.5),
            KeywordMetrics(search_volume=2_000_000, cpc=12.5),  # volume out of range
            KeywordMetrics(search_volume=40, cpc=3.1, error_message="fallback",
                           outcome=Outcome.DEGRADED),
        ]
        mock_domains.side_effect = lambda base: _checks(base, com=True, net=True)

        results = search_niches(_criteria(city=AUSTIN))

        mock_cities.assert_not_called()
        mock_niches.assert_called_once_with(limit=50)
        assert [c.args[0] for c in mock_metrics.call_args_list] == [
            "electrician austin", "plumber austin", "tree service austin",
        ]
        assert [r.keyword for r in results] == ["electrician austin", "tree service austin"]
        first = results[0]
        assert first.id == "1-10"
        assert first.population == 500_000
        assert first.exact_match_domain == "electricianaustin"
        assert first.exact_match_domain_com == "electricianaustin.com"
        assert first.domain_status == {"com": True, "net": True, "org": False}
        assert first.domain_links["com"].endswith("?domain=electricianaustin.com")
        assert first.domain_links["org"] is None
        assert first.metrics_outcome is Outcome.OK
        assert results[1].metrics_outcome is Outcome.DEGRADED
        assert mock_domains.call_count == 2

    def test_results_within_ranges(self, mock_cities, mock_niches, mock_metrics, mock_domains):
        mock_cities.return_value = CITY_ROWS
        mock_niches.return_value = NICHE_ROWS
        volumes = iter([50, 500, 5000, 700, 100, 300, 999, 1000, 1001])
        mock_metrics.side_effect = lambda kw: KeywordMetrics(search_volume=next(volumes), cpc=4.0)
        mock_domains.side_effect = _checks

        criteria = _criteria(search_volume=Range(100, 1000), cpc=Range(2, 5))
        results = search_niches(criteria)

        assert [r.search_volume for r in results] == [500, 700, 100, 300, 999, 1000]
        for r in results:
            assert criteria.search_volume.contains(r.search_volume)
            assert criteria.cpc.contains(r.cpc)

    def test_city_major_order(self, mock_cities, mock_niches, mock_metrics, mock_domains):
        mock_cities.return_value = CITY_ROWS[:2]
        mock_niches.return_value = NICHE_ROWS[:2]
        mock_metrics.return_value = KeywordMetrics(search_volume=500, cpc=5.0)
        mock_domains.side_effect = _checks

        results = search_niches(_criteria(niche=None, location_first=True))

        assert [r.keyword for r in results] == [
            "houston electrician", "houston plumber", "austin electrician", "austin plumber",
        ]
        mock_cities.assert_called_once_with(population_min=None, population_max=None, limit=20)
        mock_niches.assert_called_once_with(limit=20)

    def test_capped_at_max_results(self, mock_cities, mock_niches, mock_metrics, mock_domains):
        mock_cities.return_value = CITY_ROWS
        mock_niches.return_value = NICHE_ROWS + [{"id": 13, "name": "Roofer"}]
        mock_metrics.return_value = KeywordMetrics(search_volume=500, cpc=5.0)
        mock_domains.side_effect = _checks

        results = search_niches(_criteria())

        assert len(results) == 10
        assert mock_metrics.call_count == 10

    def test_failing_candidate_skipped(self, mock_cities, mock_niches, mock_metrics, mock_domains):
        mock_niches.return_value = NICHE_ROWS
        mock_metrics.side_effect = [
            KeywordMetrics(search_volume=500, cpc=5.0),
            RuntimeError("unexpected"),
            KeywordMetrics(search_volume=600, cpc=6.0),
        ]
        mock_domains.side_effect = _checks

        results = search_niches(_criteria(city=AUSTIN))

        assert [r.keyword for r in results] == ["electrician austin", "tree service austin"]

    def test_population_filter_passed_to_store(self, mock_cities, mock_niches, mock_metrics,
                                               mock_domains):
        mock_cities.return_value = []
        mock_niches.return_value = NICHE_ROWS

        results = search_niches(_criteria(population=Range(100_000, 1_000_000)))

        assert results == []
        mock_cities.assert_called_once_with(
            population_min=100_000, population_max=1_000_000, limit=20
        )
        mock_metrics.assert_not_called()

    def test_results_within_population(self, mock_cities, mock_niches, mock_metrics,
                                       mock_domains):
        mock_cities.return_value = CITY_ROWS
        mock_niches.return_value = NICHE_ROWS[:2]
        mock_metrics.return_value = KeywordMetrics(search_volume=500, cpc=5.0)
        mock_domains.side_effect = _checks

        population = Range(200_000, 1_000_000)
        results = search_niches(_criteria(population=population))

        assert [r.keyword for r in results] == [
            "electrician austin", "plumber austin", "electrician boise", "plumber boise",
        ]
        for r in results:
            assert population.contains(r.population)

    def test_selected_city_inside_population(self, mock_cities, mock_niches, mock_metrics,
                                             mock_domains):
        mock_niches.return_value = NICHE_ROWS
        mock_metrics.return_value = KeywordMetrics(search_volume=500, cpc=5.0)
        mock_domains.side_effect = _checks

        results = search_niches(_criteria(city=AUSTIN, population=Range(100_000, 500_000)))

        assert len(results) == 3
        assert all(r.population == 500_000 for r in results)

    def test_selected_city_outside_population(self, mock_cities, mock_niches, mock_metrics,
                                              mock_domains):
        mock_niches.return_value = NICHE_ROWS

        results = search_niches(_criteria(city=AUSTIN, population=Range(0, 100_000)))

        assert results == []
        mock_metrics.assert_not_called()

    def test_empty_niche_universe(self, mock_cities, mock_niches, mock_metrics, mock_domains):
        mock_cities.return_value = CITY_ROWS
        mock_niches.return_value = []

        assert search_niches(_criteria()) == []
        mock_metrics.assert_not_called()

    def test_store_failure_is_fatal(self, mock_cities, mock_niches, mock_metrics, mock_domains):
        mock_cities.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(SearchError):
            search_niches(_criteria(niche=Niche(id=11, name="Plumber")))
        mock_metrics.assert_not_called()
