"""Credit purchases.

Checkout happens on an external payment page. A pending purchase is
created when checkout starts. complete_purchase and fail_purchase are the
entry points for the payment provider's webhook handler, deployed outside
this package: it calls complete_purchase on checkout.session.completed and
fail_purchase on checkout.session.expired or a failed payment intent.
Clients only ever poll the result.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import requests

from nichefinder.config import CHECKOUT_FUNCTION, CHECKOUT_TIMEOUT, CREDIT_PACKAGES
from nichefinder.db import (
    STORE_ERRORS,
    get_purchase_by_session,
    get_purchases,
    insert_purchase,
    update_purchase_status,
)
from nichefinder.functions import invoke_function
from nichefinder.ledger import CreditLedgerError, add_credits
from nichefinder.models import Purchase, Session
from nichefinder.notices import Notice, Notifier, log_notice
from nichefinder.retry import PAYMENT_VERIFY_POLICY, RetryPolicy, poll

logger = logging.getLogger(__name__)


def initiate_checkout(
    session: Session,
    package: str,
    quantity: int = 1,
    notify: Notifier = log_notice,
) -> str | None:
    """Start a checkout for a credit package.

    Args:
        session: signed-in user
        package: "base" or "additional"
        quantity: number of units of the package

    Returns:
        URL of the external payment page, or None on failure.
    """
    if package not in CREDIT_PACKAGES:
        raise ValueError(f"unknown credit package: {package}")
    if quantity < 1:
        raise ValueError(f"quantity must be at least 1: {quantity}")

    price_id = CREDIT_PACKAGES[package][0]
    try:
        payload = invoke_function(
            CHECKOUT_FUNCTION,
            {"priceId": price_id, "quantity": quantity},
            CHECKOUT_TIMEOUT,
            access_token=session.access_token,
        )
    except (requests.RequestException, ValueError) as e:
        logger.error("checkout failed: user=%s, package=%s, error=%s", session.user_id, package, e)
        notify(Notice("Checkout Error", "Could not initialize checkout. Please try again.",
                      "destructive"))
        return None

    url = payload.get("sessionUrl") if isinstance(payload, dict) else None
    if not url:
        logger.error("checkout returned no session URL: payload=%r", payload)
        notify(Notice("Checkout Error", "Could not initialize checkout. Please try again.",
                      "destructive"))
        return None

    logger.info("checkout started: user=%s, package=%s, quantity=%d, session=%s",
                session.user_id, package, quantity, payload.get("sessionId"))
    return url


def complete_purchase(
    stripe_session_id: str,
    user_id: str,
    payment_intent_id: str | None = None,
    credits: int | None = None,
    amount: float | None = None,
) -> bool:
    """Mark a checkout session's purchase completed and grant its credits.

    Safe to call more than once for the same session; credits are granted
    only by the call that performs the status change. If the grant fails the
    purchase is put back to pending and the error re-raised, so a redelivered
    webhook grants them again.

    Args:
        credits / amount: used only when no pending purchase exists and one
            has to be created from the payment data.

    Returns:
        True if credits were granted by this call.

    Raises:
        CreditLedgerError: the credits could not be added.
    """
    row = get_purchase_by_session(stripe_session_id)

    if row is None:
        if not credits or credits <= 0:
            logger.error("no purchase for session %s and no credit count supplied",
                         stripe_session_id)
            return False
        logger.info("purchase for session %s not found, creating it", stripe_session_id)
        insert_purchase({
            "user_id": user_id,
            "amount": amount or 0,
            "credits_purchased": credits,
            "stripe_session_id": stripe_session_id,
            "stripe_payment_intent_id": payment_intent_id,
            "status": "pending",
        })
        row = get_purchase_by_session(stripe_session_id)
        if row is None:
            logger.error("purchase for session %s missing after insert", stripe_session_id)
            return False

    if row.get("status") == "completed":
        logger.info("session %s already processed, skipping", stripe_session_id)
        return False

    changed = update_purchase_status(
        row["id"], "completed", {"stripe_payment_intent_id": payment_intent_id}
    )
    if not changed:
        logger.info("session %s completed concurrently, skipping", stripe_session_id)
        return False

    try:
        add_credits(row["user_id"], int(row["credits_purchased"]))
    except CreditLedgerError as e:
        logger.error("credit grant failed, purchase back to pending: session=%s, error=%s",
                     stripe_session_id, e)
        update_purchase_status(row["id"], "pending")
        raise
    return True


def fail_purchase(stripe_session_id: str) -> bool:
    """Mark a pending purchase failed. Completed purchases are left alone."""
    row = get_purchase_by_session(stripe_session_id)
    if row is None or row.get("status") != "pending":
        return False
    return update_purchase_status(row["id"], "failed")


def get_purchase_history(user_id: str) -> list[Purchase]:
    """A user's purchases, newest first. Empty on store errors."""
    try:
        return [Purchase.from_row(row) for row in get_purchases(user_id)]
    except STORE_ERRORS as e:
        logger.error("failed to load purchase history: user=%s, error=%s", user_id, e)
        return []


def verify_payment_success(stripe_session_id: str) -> bool:
    """True if the purchase for the session is completed."""
    try:
        row = get_purchase_by_session(stripe_session_id)
    except STORE_ERRORS as e:
        logger.error("failed to verify payment: session=%s, error=%s", stripe_session_id, e)
        return False
    return row is not None and row.get("status") == "completed"


def wait_for_payment(
    stripe_session_id: str,
    policy: RetryPolicy = PAYMENT_VERIFY_POLICY,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll until the webhook has completed the purchase.

    Returns:
        True once completed, False if still processing after all attempts.
    """
    return poll(lambda: verify_payment_success(stripe_session_id), policy, sleep)
