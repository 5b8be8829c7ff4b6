"""Niche finder: command-line entry point.

Commands:
  search          run a niche search and charge credits for the results
  balance         show the current credit balance
  history         list credit purchases
  buy             start a checkout for a credit package
  verify-payment  wait for a checkout session to be completed
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime

from nichefinder.auth import AuthenticationError, sign_in
from nichefinder.config import (
    CREDIT_PACKAGES,
    LOG_DIR,
    NICHEFINDER_EMAIL,
    NICHEFINDER_PASSWORD,
)
from nichefinder.db import STORE_ERRORS, find_city, find_niche
from nichefinder.ledger import get_balance
from nichefinder.models import City, KeywordResult, Niche, Outcome, Range, SearchCriteria
from nichefinder.payments import get_purchase_history, initiate_checkout, wait_for_payment
from nichefinder.session import run_search

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Initialise logging."""
    log_file = LOG_DIR / f"nichefinder_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nichefinder",
        description="Find rank-and-rent keyword niches by city and business category",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="run a niche search")
    search.add_argument("--city", help="city name (default: top cities by population)")
    search.add_argument("--state", help="two-letter state code to disambiguate --city")
    search.add_argument("--niche", help="niche name (default: first niches by name)")
    search.add_argument("--volume-min", type=int, default=0)
    search.add_argument("--volume-max", type=int, default=1_000_000)
    search.add_argument("--cpc-min", type=float, default=0.0)
    search.add_argument("--cpc-max", type=float, default=1000.0)
    search.add_argument("--population-min", type=int)
    search.add_argument("--population-max", type=int)
    search.add_argument("--location-first", action="store_true",
                        help='build "<city> <niche>" instead of "<niche> <city>"')

    sub.add_parser("balance", help="show credit balance")
    sub.add_parser("history", help="list credit purchases")

    buy = sub.add_parser("buy", help="start a checkout")
    buy.add_argument("package", choices=sorted(CREDIT_PACKAGES))
    buy.add_argument("--quantity", type=int, default=1)

    verify = sub.add_parser("verify-payment", help="wait for a checkout to complete")
    verify.add_argument("session_id")
    return parser


def build_criteria(args: argparse.Namespace) -> SearchCriteria:
    """Turn search arguments into SearchCriteria, resolving names in the store.

    Raises:
        ValueError: unknown city/niche or invalid range.
    """
    city = None
    if args.city:
        row = find_city(args.city, args.state)
        if row is None:
            raise ValueError(f"city not found: {args.city}")
        city = City.from_row(row)

    niche = None
    if args.niche:
        row = find_niche(args.niche)
        if row is None:
            raise ValueError(f"niche not found: {args.niche}")
        niche = Niche.from_row(row)

    population = None
    if args.population_min is not None or args.population_max is not None:
        population = Range(
            args.population_min or 0,
            args.population_max if args.population_max is not None else sys.maxsize,
        )

    return SearchCriteria(
        search_volume=Range(args.volume_min, args.volume_max),
        cpc=Range(args.cpc_min, args.cpc_max),
        niche=niche,
        city=city,
        population=population,
        location_first=args.location_first,
    )


def format_results(results: list[KeywordResult]) -> str:
    """Fixed-width table; '*' marks rows built on fallback metrics."""
    lines = [f"{'keyword':<36} {'volume':>8} {'cpc':>8} {'population':>11}  com net org  domain"]
    for r in results:
        marker = "*" if r.metrics_outcome is not Outcome.OK else " "
        population = f"{r.population:,}" if r.population is not None else "-"
        status = "  ".join(
            " Y " if r.domain_status.get(tld) else " - " for tld in ("com", "net", "org")
        )
        lines.append(
            f"{r.keyword:<35}{marker} {r.search_volume:>8,} {'$' + format(r.cpc, '.2f'):>8} "
            f"{population:>11} {status}  {r.exact_match_domain_com}"
        )
    return "\n".join(lines)


def run(argv: list[str] | None = None) -> int:
    """Main process."""
    args = build_parser().parse_args(argv)
    setup_logging()

    if args.command == "verify-payment":
        if wait_for_payment(args.session_id):
            print("Payment completed.")
            return 0
        print("Payment is still processing. Check your balance again in a few minutes.")
        return 1

    try:
        session = sign_in(NICHEFINDER_EMAIL, NICHEFINDER_PASSWORD)
    except AuthenticationError as e:
        logger.error("sign-in failed: %s", e)
        return 1

    if args.command == "balance":
        print(f"{get_balance(session.user_id)} credits")
    elif args.command == "history":
        for p in get_purchase_history(session.user_id):
            print(f"{p.created_at or '-':<32} {p.credits_purchased:>6} credits "
                  f"${p.amount:>8.2f}  {p.status}")
    elif args.command == "buy":
        url = initiate_checkout(session, args.package, args.quantity)
        if url is None:
            return 1
        print(f"Complete your purchase at: {url}")
    elif args.command == "search":
        try:
            criteria = build_criteria(args)
        except ValueError as e:
            logger.error("invalid search: %s", e)
            return 2
        except STORE_ERRORS as e:
            logger.error("could not resolve search selection: %s", e)
            return 1
        results = run_search(session, criteria)
        if results:
            print(format_results(results))
    return 0


if __name__ == "__main__":
    sys.exit(run())
