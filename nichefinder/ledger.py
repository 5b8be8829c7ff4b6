"""Per-user credit ledger.

Balances live in user_credits (one row per user). Every write is a
compare-and-set on the balance that was read, so two concurrent debits
cannot both spend the same credits and the balance never goes negative.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone

from nichefinder.config import CREDIT_UPDATE_ATTEMPTS
from nichefinder.db import (
    STORE_ERRORS,
    get_credit_row,
    insert_credit_row,
    insert_search_usage,
    update_credits_if,
)
from nichefinder.models import UsageRecord

logger = logging.getLogger(__name__)


class CreditLedgerError(Exception):
    """The credit store could not be read or written."""


def get_balance(user_id: str) -> int:
    """Current balance. Creates a zero row on first access; 0 on store errors."""
    try:
        row = get_credit_row(user_id)
        if row is None:
            insert_credit_row(user_id, 0)
            return 0
        return max(int(row.get("credits") or 0), 0)
    except STORE_ERRORS as e:
        logger.error("failed to read credits: user=%s, error=%s", user_id, e)
        return 0


def check_and_debit(user_id: str, amount: int) -> bool:
    """Debit ``amount`` credits if the balance covers it.

    Returns:
        True if debited, False if the balance is insufficient (nothing is
        written in that case).

    Raises:
        CreditLedgerError: the store failed, or the balance kept changing
            under concurrent writers.
    """
    if amount < 0:
        raise ValueError(f"debit amount must be non-negative: {amount}")

    try:
        for attempt in range(1, CREDIT_UPDATE_ATTEMPTS + 1):
            row = get_credit_row(user_id)
            balance = int(row.get("credits") or 0) if row else 0
            if balance < amount:
                logger.info("insufficient credits: user=%s, balance=%d, needed=%d",
                            user_id, balance, amount)
                return False
            if amount == 0:
                return True
            if update_credits_if(user_id, balance, balance - amount):
                logger.info("debited %d credits: user=%s, balance %d -> %d",
                            amount, user_id, balance, balance - amount)
                return True
            logger.warning("credit balance changed during debit, retrying (%d/%d): user=%s",
                           attempt, CREDIT_UPDATE_ATTEMPTS, user_id)
    except STORE_ERRORS as e:
        raise CreditLedgerError(f"could not debit credits for {user_id}: {e}") from e

    raise CreditLedgerError(f"credit balance for {user_id} kept changing")


def add_credits(user_id: str, amount: int) -> int:
    """Add purchased credits to a balance.

    Returns:
        The new balance.

    Raises:
        CreditLedgerError: the store failed or the balance kept changing.
    """
    if amount <= 0:
        raise ValueError(f"credit amount must be positive: {amount}")

    try:
        for _ in range(CREDIT_UPDATE_ATTEMPTS):
            row = get_credit_row(user_id)
            if row is None:
                insert_credit_row(user_id, amount)
                return amount
            balance = int(row.get("credits") or 0)
            if update_credits_if(user_id, balance, balance + amount):
                logger.info("added %d credits: user=%s, balance %d -> %d",
                            amount, user_id, balance, balance + amount)
                return balance + amount
    except STORE_ERRORS as e:
        raise CreditLedgerError(f"could not add credits for {user_id}: {e}") from e

    raise CreditLedgerError(f"credit balance for {user_id} kept changing")


def record_usage(user_id: str, label: str, count: int) -> None:
    """Append to the usage audit trail. Failures are logged only."""
    record = UsageRecord(
        user_id=user_id,
        keyword=label,
        results_count=count,
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    try:
        insert_search_usage(asdict(record))
    except STORE_ERRORS as e:
        logger.error("failed to record search usage: user=%s, error=%s", user_id, e)
