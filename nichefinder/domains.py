"""Domain availability across .com / .net / .org.

One check-domain-availability call per TLD. The three calls are
independent, so they run in a small thread pool; a failed call is reported
as unavailable and never affects the other TLDs.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import requests

from nichefinder.config import (
    DOMAIN_FUNCTION,
    DOMAIN_TIMEOUT,
    DOMAIN_TLDS,
    REGISTRATION_URL_TEMPLATE,
)
from nichefinder.functions import invoke_function
from nichefinder.models import DomainAvailability, Outcome

logger = logging.getLogger(__name__)


def check_domain(domain: str) -> DomainAvailability:
    """Check one fully-qualified domain. Never raises.

    Returns:
        DomainAvailability. On any failure ``available`` is False and
        ``outcome`` is FAILED.
    """
    try:
        payload = invoke_function(DOMAIN_FUNCTION, {"domain": domain}, DOMAIN_TIMEOUT)
    except (requests.RequestException, ValueError) as e:
        logger.error("domain check failed: domain=%s, error=%s", domain, e)
        return _unavailable(domain, str(e))

    if not isinstance(payload, dict):
        return _unavailable(domain, "malformed domain availability payload")
    if payload.get("error"):
        reason = payload.get("errorMessage") or "domain availability service error"
        logger.error("domain check error: domain=%s, error=%s", domain, reason)
        return _unavailable(domain, reason)

    return DomainAvailability(
        domain=domain,
        available=bool(payload.get("available")),
        premium=bool(payload.get("premiumDomain")),
        purchase_price=_price(payload.get("purchasePrice")),
        renewal_price=_price(payload.get("renewalPrice")),
        error_message=payload.get("errorMessage") or None,
    )


def check_domain_availability(
    domain_base: str, tlds: tuple[str, ...] = DOMAIN_TLDS
) -> dict[str, DomainAvailability]:
    """Check ``<domain_base>.<tld>`` for every TLD.

    Returns:
        {tld: DomainAvailability}, in ``tlds`` order.
    """
    with ThreadPoolExecutor(max_workers=len(tlds)) as pool:
        futures = {tld: pool.submit(check_domain, f"{domain_base}.{tld}") for tld in tlds}
        checks = {tld: future.result() for tld, future in futures.items()}

    logger.info(
        "domains %s: %s",
        domain_base,
        ", ".join(f"{tld}={'free' if c.available else 'taken'}" for tld, c in checks.items()),
    )
    return checks


def registration_link(availability: DomainAvailability) -> str | None:
    """Registrar deeplink, only for available domains."""
    if not availability.available:
        return None
    return REGISTRATION_URL_TEMPLATE.format(domain=availability.domain)


def _unavailable(domain: str, reason: str) -> DomainAvailability:
    return DomainAvailability(
        domain=domain, available=False, error_message=reason, outcome=Outcome.FAILED
    )


def _price(value) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
