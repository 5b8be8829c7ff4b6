"""Supabase database operations.

Tables: cities, niches, user_credits, purchases, search_usage.
The client is created on first use so importing this module never needs
credentials.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from nichefinder.config import SUPABASE_SCHEMA, SUPABASE_SECRET_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)

# Errors raised by table operations: PostgREST rejections and transport failures
STORE_ERRORS = (APIError, httpx.HTTPError)

_client: Client | None = None


def get_client() -> Client:
    """Return the shared Supabase client, creating it on first call."""
    global _client
    if _client is None:
        if not SUPABASE_URL or not SUPABASE_SECRET_KEY:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SECRET_KEY must be set")
        _client = create_client(SUPABASE_URL, SUPABASE_SECRET_KEY)
    return _client


def _table(name: str):
    """Reference a table in the configured schema."""
    return get_client().schema(SUPABASE_SCHEMA).table(name)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# --- cities / niches ---


def list_cities(
    population_min: int | None = None,
    population_max: int | None = None,
    limit: int | None = None,
) -> list[dict]:
    """Fetch cities ordered by descending population, then name.

    Args:
        population_min: inclusive lower bound, None for no bound
        population_max: inclusive upper bound, None for no bound
        limit: maximum number of rows, None for all

    Returns:
        [{"id": int, "name": str, "state": str, "population": int}, ...]
    """
    query = _table("cities").select("id, name, state, population")
    if population_min is not None:
        query = query.gte("population", population_min)
    if population_max is not None:
        query = query.lte("population", population_max)
    query = query.order("population", desc=True).order("name")
    if limit is not None:
        query = query.limit(limit)
    return query.execute().data or []


def list_niches(limit: int | None = None) -> list[dict]:
    """Fetch niches ordered by name.

    Returns:
        [{"id": int, "name": str}, ...]
    """
    query = _table("niches").select("id, name").order("name")
    if limit is not None:
        query = query.limit(limit)
    return query.execute().data or []


def find_city(name: str, state: str | None = None) -> dict | None:
    """Look up one city by name (case-insensitive), optionally by state."""
    query = (
        _table("cities")
        .select("id, name, state, population")
        .ilike("name", _escape_like(name))
    )
    if state:
        query = query.eq("state", state.upper())
    rows = query.order("population", desc=True).limit(1).execute().data
    return rows[0] if rows else None


def find_niche(name: str) -> dict | None:
    """Look up one niche by name (case-insensitive)."""
    rows = (
        _table("niches").select("id, name").ilike("name", _escape_like(name))
        .limit(1).execute().data
    )
    return rows[0] if rows else None


# --- user_credits ---


def get_credit_row(user_id: str) -> dict | None:
    """Fetch the credit row for a user, None if it does not exist yet."""
    rows = (
        _table("user_credits")
        .select("user_id, credits")
        .eq("user_id", user_id)
        .limit(1)
        .execute()
        .data
    )
    return rows[0] if rows else None


def insert_credit_row(user_id: str, credits: int = 0) -> None:
    """Create the credit row for a user."""
    _table("user_credits").insert({"user_id": user_id, "credits": credits}).execute()
    logger.info("user_credits created: user=%s, credits=%d", user_id, credits)


def update_credits_if(user_id: str, expected: int, new: int) -> bool:
    """Set the balance to ``new`` only if it is still ``expected``.

    A single conditional UPDATE, so no other writer can slip in between
    the check and the write.

    Returns:
        True if a row was updated, False if the balance had changed.
    """
    resp = (
        _table("user_credits")
        .update({"credits": new, "updated_at": _now()})
        .eq("user_id", user_id)
        .eq("credits", expected)
        .execute()
    )
    return bool(resp.data)


# --- purchases ---


def insert_purchase(record: dict) -> None:
    """Insert a purchase record.

    Args:
        record: {"user_id", "amount", "credits_purchased", "stripe_session_id", "status", ...}
    """
    _table("purchases").insert(record).execute()
    logger.info("purchases inserted: session=%s", record.get("stripe_session_id"))


def get_purchases(user_id: str) -> list[dict]:
    """Fetch a user's purchases, newest first."""
    return (
        _table("purchases")
        .select("*")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
        .data
        or []
    )


def get_purchase_by_session(stripe_session_id: str) -> dict | None:
    """Fetch the purchase created for a checkout session."""
    rows = (
        _table("purchases")
        .select("*")
        .eq("stripe_session_id", stripe_session_id)
        .limit(1)
        .execute()
        .data
    )
    return rows[0] if rows else None


def update_purchase_status(
    purchase_id: str, status: str, fields: dict | None = None
) -> bool:
    """Move a purchase to ``status`` unless it is already there.

    Returns:
        True if the purchase changed, False if it already had that status.
    """
    values = {"status": status, "updated_at": _now(), **(fields or {})}
    resp = (
        _table("purchases")
        .update(values)
        .eq("id", purchase_id)
        .neq("status", status)
        .execute()
    )
    return bool(resp.data)


# --- search_usage ---


def insert_search_usage(record: dict) -> None:
    """Append a search usage record.

    Args:
        record: {"user_id", "keyword", "results_count", "created_at"}
    """
    _table("search_usage").insert(record).execute()
    logger.info("search_usage inserted: user=%s, results=%d",
                record.get("user_id"), record.get("results_count", 0))
