"""Data model definitions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Outcome(str, Enum):
    """How a boundary call produced its value."""

    OK = "ok"  # real data from the service
    DEGRADED = "degraded"  # fallback data, reason attached
    FAILED = "failed"  # nothing usable


@dataclass(frozen=True)
class City:
    """An imported city."""

    id: int
    name: str
    state: str  # two-letter region code
    population: int

    @classmethod
    def from_row(cls, row: dict) -> City:
        return cls(
            id=row["id"],
            name=row["name"],
            state=row.get("state") or "",
            population=int(row.get("population") or 0),
        )


@dataclass(frozen=True)
class Niche:
    """An imported business category."""

    id: int
    name: str

    @classmethod
    def from_row(cls, row: dict) -> Niche:
        return cls(id=row["id"], name=row["name"])


@dataclass(frozen=True)
class Range:
    """Inclusive numeric range used by the search filters."""

    min: float
    max: float

    def __post_init__(self):
        if self.min < 0:
            raise ValueError(f"range minimum must be non-negative: {self.min}")
        if self.min > self.max:
            raise ValueError(f"range minimum {self.min} exceeds maximum {self.max}")

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True)
class SearchCriteria:
    """Criteria for one search request. Not persisted."""

    search_volume: Range
    cpc: Range
    niche: Niche | None = None
    city: City | None = None
    population: Range | None = None
    location_first: bool = False  # "<city> <niche>" instead of "<niche> <city>"

    def label(self) -> str:
        """Short description used in the usage audit trail."""
        niche = self.niche.name if self.niche else "all niches"
        city = self.city.name if self.city else "all cities"
        return f"{niche} / {city}"


@dataclass(frozen=True)
class KeywordMetrics:
    """Search volume and CPC for one keyword."""

    search_volume: int
    cpc: float
    error_message: str | None = None
    outcome: Outcome = Outcome.OK


@dataclass(frozen=True)
class DomainAvailability:
    """Availability of one fully-qualified domain."""

    domain: str
    available: bool
    premium: bool = False
    purchase_price: str | None = None
    renewal_price: str | None = None
    error_message: str | None = None
    outcome: Outcome = Outcome.OK


@dataclass(frozen=True)
class KeywordResult:
    """One accepted candidate, ready for display."""

    id: str
    keyword: str
    search_volume: int
    cpc: float
    population: int | None
    exact_match_domain: str  # base name without TLD
    domain_status: dict[str, bool]  # tld -> available
    domain_links: dict[str, str | None]  # tld -> registration link, None if taken
    metrics_outcome: Outcome = Outcome.OK

    @property
    def exact_match_domain_com(self) -> str:
        return f"{self.exact_match_domain}.com"


@dataclass(frozen=True)
class Purchase:
    """A credit purchase record."""

    id: str
    user_id: str
    amount: float
    credits_purchased: int
    stripe_session_id: str | None
    status: str  # "pending" | "completed" | "failed"
    stripe_payment_intent_id: str | None = None
    created_at: str | None = None  # ISO 8601

    @classmethod
    def from_row(cls, row: dict) -> Purchase:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            amount=float(row.get("amount") or 0),
            credits_purchased=int(row.get("credits_purchased") or 0),
            stripe_session_id=row.get("stripe_session_id"),
            status=row.get("status", "pending"),
            stripe_payment_intent_id=row.get("stripe_payment_intent_id"),
            created_at=row.get("created_at"),
        )


@dataclass(frozen=True)
class Session:
    """Authenticated user identity, passed explicitly to entry points."""

    user_id: str
    access_token: str
    email: str | None = None


@dataclass
class UsageRecord:
    """Audit trail row written after a debited search."""

    user_id: str  # uuid
    keyword: str  # search label
    results_count: int
    created_at: str  # ISO 8601
