"""Search session controller.

Gates a niche search behind a signed-in session and the credit balance:
results are charged one credit each, and a search the user cannot pay for
returns nothing.
"""

from __future__ import annotations

import logging

from nichefinder.ledger import (
    CreditLedgerError,
    check_and_debit,
    get_balance,
    record_usage,
)
from nichefinder.models import KeywordResult, SearchCriteria, Session
from nichefinder.notices import Notice, Notifier, log_notice
from nichefinder.search import SearchError, search_niches

logger = logging.getLogger(__name__)


def run_search(
    session: Session | None,
    criteria: SearchCriteria,
    notify: Notifier = log_notice,
) -> list[KeywordResult]:
    """Run a search for a user and charge for its results.

    Always returns a list; every failure is reported through ``notify``.
    """
    if session is None:
        notify(Notice("Sign in required", "Please sign in to search.", "destructive"))
        return []
    if criteria.city is None and criteria.niche is None:
        notify(Notice("Missing selection", "Please select at least a niche or a city.",
                      "destructive"))
        return []

    logger.info("search requested: user=%s, criteria=%s", session.user_id, criteria.label())
    try:
        results = search_niches(criteria)
    except SearchError as e:
        logger.error("search failed: user=%s, error=%s", session.user_id, e)
        notify(Notice("Search failed",
                      "There was an error performing your search. Please try again.",
                      "destructive"))
        return []

    if not results:
        if criteria.population is not None:
            description = (
                f"Try adjusting your population range "
                f"({int(criteria.population.min)}-{int(criteria.population.max)}) "
                f"or other search criteria."
            )
        else:
            description = "Try adjusting your search criteria to broaden your search."
        notify(Notice("No results found", description))
        return []

    needed = len(results)
    try:
        debited = check_and_debit(session.user_id, needed)
    except CreditLedgerError as e:
        logger.error("credit debit failed: user=%s, error=%s", session.user_id, e)
        notify(Notice("Error", "Could not use credits. Please try again.", "destructive"))
        return []

    if not debited:
        balance = get_balance(session.user_id)
        notify(Notice(
            "Not enough credits",
            f"You need {needed} credits but only have {balance}. "
            f"Please purchase more credits.",
            "destructive",
        ))
        return []

    record_usage(session.user_id, criteria.label(), needed)
    notify(Notice("Search completed", f"Found {needed} potential niches."))
    return results
