"""
core/router.py — Natural-language query planner.

Turns free text into a QueryPlan: zero or more temporal predicates, zero or
more tag predicates, zero or one literal keyword. core/query.py applies the
plan as a left-to-right filter chain.

Planning pipeline
-----------------
  1. Temporal phrases — every phrase is tested independently, each match adds
     a predicate on created_at:
       "last month", "this month", "this year" / "in <current year>",
       "last year", "in <yyyy>"
     "this month" and "last year" extend the base phrase set: "bills this
     month" narrows by created_at instead of falling back to substring search.
  2. Tag intents — plural / alias phrases mapped to canonical tags, in
     _TAG_INTENTS order ("receipts", "agreements", "identification", ...)
  3. Literal word — "word X" / "containing X" / "with X" → keyword X

All phrases are matched on whole words of the lowercased query. Relative
phrases are resolved against the caller's `now`, so plans are deterministic.
No LLM, no external calls.

Public API
----------
  plan = plan_query(query, now=None)
  plan.is_empty  → nothing recognised (caller falls back to substring search)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime

from core.tags import Tag

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TemporalPredicate:
    phrase: str              # phrase that produced it, e.g. "last month"
    year:   int
    month:  int | None = None   # None → whole year

    def matches(self, created_at: datetime) -> bool:
        if created_at.year != self.year:
            return False
        return self.month is None or created_at.month == self.month


@dataclass
class QueryPlan:
    original: str
    temporal: list[TemporalPredicate] = field(default_factory=list)
    tags:     list[Tag] = field(default_factory=list)
    keyword:  str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.temporal and not self.tags and self.keyword is None

    def describe(self) -> str:
        temporal = ",".join(p.phrase for p in self.temporal) or "none"
        tags = ",".join(t.value for t in self.tags) or "none"
        return f"temporal=[{temporal}] tags=[{tags}] keyword={self.keyword!r}"


# ---------------------------------------------------------------------------
# Phrase tables
# ---------------------------------------------------------------------------

_LAST_MONTH = re.compile(r"\blast month\b")
_THIS_MONTH = re.compile(r"\bthis month\b")
_THIS_YEAR = re.compile(r"\bthis year\b")
_LAST_YEAR = re.compile(r"\blast year\b")
_IN_YEAR = re.compile(r"\bin (\d{4})\b")

# Ordered: tag filters are applied in this order
_TAG_INTENTS: list[tuple[re.Pattern[str], Tag]] = [
    (re.compile(r"\breceipts?\b"),                     Tag.RECEIPT),
    (re.compile(r"\binvoices?\b"),                     Tag.INVOICE),
    (re.compile(r"\bbills?\b"),                        Tag.BILL),
    (re.compile(r"\bwarrant(?:y|ies)\b"),              Tag.WARRANTY),
    (re.compile(r"\b(?:contracts?|agreements?)\b"),    Tag.CONTRACT),
    (re.compile(r"\bcertificates?\b"),                 Tag.CERTIFICATE),
    (re.compile(r"\b(?:id cards?|identification)\b"),  Tag.ID_CARD),
    (re.compile(r"\bbank statements?\b"),              Tag.BANK_STATEMENT),
]

_LITERAL_WORD = re.compile(
    r"\b(?:with\s+the\s+word|containing\s+the\s+word|the\s+word|word|containing|with)"
    r"\s+[\"']?([\w\-]+)"
)


# ---------------------------------------------------------------------------
# Planners
# ---------------------------------------------------------------------------

def _previous_month(now: datetime) -> tuple[int, int]:
    if now.month == 1:
        return now.year - 1, 12
    return now.year, now.month - 1


def _plan_temporal(q: str, now: datetime) -> list[TemporalPredicate]:
    preds: list[TemporalPredicate] = []

    if _LAST_MONTH.search(q):
        year, month = _previous_month(now)
        preds.append(TemporalPredicate("last month", year, month))

    if _THIS_MONTH.search(q):
        preds.append(TemporalPredicate("this month", now.year, now.month))

    if _THIS_YEAR.search(q) or re.search(rf"\bin {now.year}\b", q):
        preds.append(TemporalPredicate("this year", now.year))

    if _LAST_YEAR.search(q):
        preds.append(TemporalPredicate("last year", now.year - 1))

    m = _IN_YEAR.search(q)
    if m:
        preds.append(TemporalPredicate(f"in {m.group(1)}", int(m.group(1))))

    return preds


def _plan_tags(q: str) -> list[Tag]:
    return [tag for pattern, tag in _TAG_INTENTS if pattern.search(q)]


def _plan_keyword(q: str) -> str | None:
    m = _LITERAL_WORD.search(q)
    return m.group(1) if m else None


def plan_query(query: str, now: datetime | None = None) -> QueryPlan:
    """Parse a free-text query into a QueryPlan. Never raises."""
    _now = now or datetime.now()
    q = re.sub(r"\s+", " ", (query or "").lower()).strip()

    plan = QueryPlan(
        original=query,
        temporal=_plan_temporal(q, _now),
        tags=_plan_tags(q),
        keyword=_plan_keyword(q),
    )
    logger.debug("plan_query(%r): %s", query, plan.describe())
    return plan
