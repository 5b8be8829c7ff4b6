"""Keyword metrics lookup.

Strategy:
  1. get-keyword-data Edge Function (search volume + CPC)
  2. randomized fallback values when the call fails outright

The service may itself answer with fallback numbers and an errorMessage;
that answer is accepted as-is and tagged degraded.
"""

from __future__ import annotations

import logging
import random
import time

import requests

from nichefinder.config import (
    FALLBACK_CPC_CENTS_MAX,
    FALLBACK_CPC_CENTS_MIN,
    FALLBACK_VOLUME_MAX,
    FALLBACK_VOLUME_MIN,
    METRICS_CALL_DELAY,
    METRICS_FUNCTION,
    METRICS_TIMEOUT,
)
from nichefinder.functions import invoke_function
from nichefinder.models import KeywordMetrics, Outcome

logger = logging.getLogger(__name__)


def fetch_keyword_metrics(keyword: str) -> KeywordMetrics:
    """Fetch search volume and CPC for a keyword. Never raises.

    Every successful call is followed by METRICS_CALL_DELAY seconds of
    waiting to stay under the upstream request rate.
    """
    try:
        payload = invoke_function(METRICS_FUNCTION, {"keyword": keyword}, METRICS_TIMEOUT)
    except (requests.RequestException, ValueError) as e:
        logger.error("metrics lookup failed: keyword=%s, error=%s", keyword, e)
        return fallback_metrics(str(e))

    wait_interval()

    metrics = _parse_metrics(payload)
    if metrics is None:
        logger.error("metrics payload unusable: keyword=%s, payload=%r", keyword, payload)
        return fallback_metrics("empty or malformed metrics payload")

    if metrics.outcome is Outcome.DEGRADED:
        logger.warning("metrics service returned fallback data: keyword=%s, reason=%s",
                       keyword, metrics.error_message)
    return metrics


def wait_interval() -> None:
    """Pause between metrics calls."""
    time.sleep(METRICS_CALL_DELAY)


def fallback_metrics(reason: str) -> KeywordMetrics:
    """Random metrics: volume in [100, 5100), CPC in [1.00, 16.00)."""
    return KeywordMetrics(
        search_volume=random.randrange(FALLBACK_VOLUME_MIN, FALLBACK_VOLUME_MAX),
        cpc=random.randrange(FALLBACK_CPC_CENTS_MIN, FALLBACK_CPC_CENTS_MAX) / 100,
        error_message=reason,
        outcome=Outcome.DEGRADED,
    )


def _parse_metrics(payload) -> KeywordMetrics | None:
    if not isinstance(payload, dict):
        return None
    try:
        search_volume = int(payload["searchVolume"])
        cpc = round(float(payload["cpc"]), 2)
    except (KeyError, TypeError, ValueError):
        return None
    if search_volume < 0 or cpc < 0:
        return None

    error = payload.get("errorMessage") or None
    return KeywordMetrics(
        search_volume=search_volume,
        cpc=cpc,
        error_message=error,
        outcome=Outcome.DEGRADED if error else Outcome.OK,
    )
