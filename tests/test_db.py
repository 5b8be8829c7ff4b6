"""Mock tests for the db module."""

from unittest.mock import MagicMock, call, patch

import pytest

_BUILDER_METHODS = ("select", "insert", "update", "eq", "neq", "gte", "lte", "ilike", "order", "limit")


def _chain(data):
    """Query builder mock whose filters all return itself."""
    chain = MagicMock()
    for name in _BUILDER_METHODS:
        getattr(chain, name).return_value = chain
    chain.execute.return_value = MagicMock(data=data)
    return chain


class TestGetClient:
    """Tests for get_client."""

    def test_missing_credentials(self):
        from nichefinder import db

        with patch.object(db, "_client", None), patch.object(db, "SUPABASE_URL", ""):
            with pytest.raises(RuntimeError):
                db.get_client()


class TestListCities:
    """Tests for list_cities."""

    @patch("nichefinder.db._table")
    def test_population_filter_and_order(self, mock_table):
        from nichefinder.db import list_cities

        rows = [{"id": 1, "name": "Austin", "state": "TX", "population": 961855}]
        chain = _chain(rows)
        mock_table.return_value = chain

        result = list_cities(population_min=100_000, population_max=1_000_000, limit=20)

        assert result == rows
        mock_table.assert_called_once_with("cities")
        chain.gte.assert_called_once_with("population", 100_000)
        chain.lte.assert_called_once_with("population", 1_000_000)
        assert chain.order.call_args_list == [call("population", desc=True), call("name")]
        chain.limit.assert_called_once_with(20)

    @patch("nichefinder.db._table")
    def test_no_filter(self, mock_table):
        from nichefinder.db import list_cities

        chain = _chain(None)
        mock_table.return_value = chain

        assert list_cities() == []
        chain.gte.assert_not_called()
        chain.lte.assert_not_called()
        chain.limit.assert_not_called()


class TestListNiches:
    """Tests for list_niches."""

    @patch("nichefinder.db._table")
    def test_ordered_by_name(self, mock_table):
        from nichefinder.db import list_niches

        chain = _chain([{"id": 1, "name": "Plumber"}])
        mock_table.return_value = chain

        assert list_niches(limit=50) == [{"id": 1, "name": "Plumber"}]
        chain.order.assert_called_once_with("name")
        chain.limit.assert_called_once_with(50)


class TestFindCity:
    """Tests for find_city."""

    @patch("nichefinder.db._table")
    def test_state_is_upper_cased(self, mock_table):
        from nichefinder.db import find_city

        row = {"id": 1, "name": "Austin", "state": "TX", "population": 961855}
        chain = _chain([row])
        mock_table.return_value = chain

        assert find_city("austin", "tx") == row
        chain.ilike.assert_called_once_with("name", "austin")
        chain.eq.assert_called_once_with("state", "TX")

    @patch("nichefinder.db._table")
    def test_not_found(self, mock_table):
        from nichefinder.db import find_city

        mock_table.return_value = _chain([])
        assert find_city("Nowhere") is None

    @patch("nichefinder.db._table")
    def test_wildcards_match_literally(self, mock_table):
        from nichefinder.db import find_city

        chain = _chain([])
        mock_table.return_value = chain

        find_city("100%_sure\\")
        chain.ilike.assert_called_once_with("name", "100\\%\\_sure\\\\")


class TestFindNiche:
    """Tests for find_niche."""

    @patch("nichefinder.db._table")
    def test_single_underscore_is_not_a_wildcard(self, mock_table):
        from nichefinder.db import find_niche

        chain = _chain([{"id": 11, "name": "Plumber"}])
        mock_table.return_value = chain

        assert find_niche("Plumber") == {"id": 11, "name": "Plumber"}
        find_niche("_")
        assert chain.ilike.call_args_list[-1].args == ("name", "\\_")


class TestCredits:
    """Tests for the user_credits operations."""

    @patch("nichefinder.db._table")
    def test_get_missing_row(self, mock_table):
        from nichefinder.db import get_credit_row

        mock_table.return_value = _chain([])
        assert get_credit_row("user-1") is None

    @patch("nichefinder.db._table")
    def test_conditional_update_applied(self, mock_table):
        from nichefinder.db import update_credits_if

        chain = _chain([{"user_id": "user-1", "credits": 0}])
        mock_table.return_value = chain

        assert update_credits_if("user-1", expected=5, new=0) is True
        assert chain.update.call_args.args[0]["credits"] == 0
        assert chain.eq.call_args_list == [call("user_id", "user-1"), call("credits", 5)]

    @patch("nichefinder.db._table")
    def test_conditional_update_missed(self, mock_table):
        from nichefinder.db import update_credits_if

        mock_table.return_value = _chain([])
        assert update_credits_if("user-1", expected=5, new=0) is False


class TestPurchases:
    """Tests for the purchases operations."""

    @patch("nichefinder.db._table")
    def test_status_update_skips_same_status(self, mock_table):
        from nichefinder.db import update_purchase_status

        chain = _chain([])
        mock_table.return_value = chain

        assert update_purchase_status("p-1", "completed") is False
        chain.neq.assert_called_once_with("status", "completed")


class TestInsertSearchUsage:
    """Tests for insert_search_usage."""

    @patch("nichefinder.db._table")
    def test_insert_record(self, mock_table):
        from nichefinder.db import insert_search_usage

        chain = _chain([])
        mock_table.return_value = chain

        record = {
            "user_id": "user-1",
            "keyword": "plumber / Austin",
            "results_count": 3,
            "created_at": "2026-02-27T00:00:00+00:00",
        }
        insert_search_usage(record)

        mock_table.assert_called_once_with("search_usage")
        chain.insert.assert_called_once_with(record)
