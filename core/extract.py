"""
core/extract.py — Structured field extraction from raw document text.

Input is text already produced by OCR / the ingestion collaborator. No I/O.

Two APIs
--------
extract_structured_data(text, cfg_obj) -> ExtractedData
    Low-level. Pattern scan only.
      dates:   five label-anchored patterns (due / renewal / warranty /
               expiry / generic "date"), each followed by a
               D{1,2}[/-]D{1,2}[/-]D{2,4} token.
      amounts: five patterns (total / subtotal / tax / amount|payment /
               bare currency symbol) capturing 1,234.56-style numerals.
      fields:  seven single-capture patterns, first match wins per key.
    Every match of every date / amount pattern is kept. Overlapping
    patterns produce repeated entries for the same substring (a "Due Date:"
    line yields both a due_date and an issue_date). Nothing is deduplicated.

to_extracted_fields(data) -> list[ExtractedField]
    Flattens ExtractedData into the {key, value, kind} records stored on a
    Document. Amount values are canonical "%.2f" strings; date values are
    the raw matched substrings.

Raw date strings are never reinterpreted: "03/04/2024" stays ambiguous.
normalize_date() is an opt-in helper (extraction.normalize_dates) that adds
an ISO value next to the raw one using an explicit date_order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date

from config import DEFAULT_CONFIG, Config
from core.models import ExtractedField, FieldKind

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_DATE_TOKEN = r"(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})"
_AMOUNT_TOKEN = r"[$€£]?\s*(\d+(?:,\d{3})*(?:\.\d{2})?)"

_DATE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("due_date",      re.compile(r"due\s*(?:date)?[:\s]*" + _DATE_TOKEN, re.IGNORECASE)),
    ("renewal_date",  re.compile(r"renewal\s*(?:date)?[:\s]*" + _DATE_TOKEN, re.IGNORECASE)),
    ("warranty_date", re.compile(
        r"warranty\s*(?:until|through|expires?)?[:\s]*" + _DATE_TOKEN, re.IGNORECASE)),
    ("expiry_date",   re.compile(
        r"expir(?:y|es|ation)\s*(?:date)?[:\s]*" + _DATE_TOKEN, re.IGNORECASE)),
    ("issue_date",    re.compile(r"(?:date|dated)[:\s]*" + _DATE_TOKEN, re.IGNORECASE)),
]

_AMOUNT_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("total",    re.compile(r"total[:\s]*" + _AMOUNT_TOKEN, re.IGNORECASE)),
    ("subtotal", re.compile(r"subtotal[:\s]*" + _AMOUNT_TOKEN, re.IGNORECASE)),
    ("tax",      re.compile(r"tax[:\s]*" + _AMOUNT_TOKEN, re.IGNORECASE)),
    ("payment",  re.compile(r"(?:amount|payment)[:\s]*" + _AMOUNT_TOKEN, re.IGNORECASE)),
    ("general",  re.compile(r"[$€£]\s*(\d+(?:,\d{3})*(?:\.\d{2})?)", re.IGNORECASE)),
]

_NUMBER_SUFFIX = r"\s*(?:#|no\.?|number)?[:\s]*([A-Z0-9\-]+)"

_FIELD_PATTERNS: dict[str, re.Pattern[str]] = {
    "invoiceNumber":  re.compile(r"invoice" + _NUMBER_SUFFIX, re.IGNORECASE),
    "orderNumber":    re.compile(r"order" + _NUMBER_SUFFIX, re.IGNORECASE),
    "modelNumber":    re.compile(r"model" + _NUMBER_SUFFIX, re.IGNORECASE),
    "serialNumber":   re.compile(r"serial" + _NUMBER_SUFFIX, re.IGNORECASE),
    "accountNumber":  re.compile(r"account" + _NUMBER_SUFFIX, re.IGNORECASE),
    "warrantyPeriod": re.compile(
        r"warranty[:\s]*(\d+\s*(?:year|month|day)s?)", re.IGNORECASE),
    "vendor":         re.compile(
        r"(?:from|vendor|seller|company)[:\s]*([A-Za-z\s&]+?)(?:\n|$)", re.IGNORECASE),
}

_DIGITS_ONLY = re.compile(r"^\d+$")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtractedDate:
    type:          str    # due_date | renewal_date | warranty_date | expiry_date | issue_date
    date:          str    # raw matched token, e.g. "12/15/2024"
    original_text: str    # full matched substring, label included
    normalized:    str | None = None   # ISO date, only with normalize_dates on

    def to_dict(self) -> dict[str, str | None]:
        d: dict[str, str | None] = {
            "type": self.type, "date": self.date, "originalText": self.original_text,
        }
        if self.normalized is not None:
            d["normalized"] = self.normalized
        return d


@dataclass(frozen=True)
class ExtractedAmount:
    type:          str    # total | subtotal | tax | payment | general
    amount:        float
    currency:      str
    original_text: str

    def to_dict(self) -> dict[str, str | float]:
        return {
            "type": self.type, "amount": self.amount,
            "currency": self.currency, "originalText": self.original_text,
        }


@dataclass
class ExtractedData:
    dates:   list[ExtractedDate] = field(default_factory=list)
    amounts: list[ExtractedAmount] = field(default_factory=list)
    fields:  dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "dates":   [d.to_dict() for d in self.dates],
            "amounts": [a.to_dict() for a in self.amounts],
            "fields":  dict(self.fields),
        }


# ---------------------------------------------------------------------------
# Date normalisation (opt-in)
# ---------------------------------------------------------------------------

def normalize_date(raw: str, date_order: str = "mdy") -> str | None:
    """
    Interpret a raw D/M/Y token under an explicit order ("mdy" or "dmy").
    Two-digit years follow the strptime %y pivot (69-99 → 19xx, 00-68 → 20xx).
    Returns an ISO string, or None when the token is not a real calendar date.
    """
    parts = re.split(r"[/\-]", raw.strip())
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    first, second, year_s = parts
    if len(year_s) == 2:
        y = int(year_s)
        year = 1900 + y if y >= 69 else 2000 + y
    elif len(year_s) == 4:
        year = int(year_s)
    else:
        return None
    month, day = (first, second) if date_order == "mdy" else (second, first)
    try:
        return date(year, int(month), int(day)).isoformat()
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# extract_structured_data
# ---------------------------------------------------------------------------

def _scan_dates(text: str, _cfg: Config) -> list[ExtractedDate]:
    dates: list[ExtractedDate] = []
    for date_type, pattern in _DATE_PATTERNS:
        for m in pattern.finditer(text):
            normalized = None
            if _cfg.normalize_dates:
                normalized = normalize_date(m.group(1), _cfg.date_order)
                if normalized is None:
                    logger.warning("Could not normalise date %r (order=%s)",
                                   m.group(1), _cfg.date_order)
            dates.append(ExtractedDate(
                type=date_type,
                date=m.group(1),
                original_text=m.group(0),
                normalized=normalized,
            ))
    return dates


def _scan_amounts(text: str, _cfg: Config) -> list[ExtractedAmount]:
    amounts: list[ExtractedAmount] = []
    for amount_type, pattern in _AMOUNT_PATTERNS:
        for m in pattern.finditer(text):
            try:
                value = float(m.group(1).replace(",", ""))
            except ValueError:
                logger.warning("Dropping unparseable amount %r", m.group(0))
                continue
            if value != value:   # NaN
                continue
            amounts.append(ExtractedAmount(
                type=amount_type,
                amount=value,
                currency=_cfg.default_currency,
                original_text=m.group(0),
            ))
    return amounts


def _scan_fields(text: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for key, pattern in _FIELD_PATTERNS.items():
        m = pattern.search(text)
        if m:
            fields[key] = m.group(1).strip()
    return fields


def extract_structured_data(
    text: str,
    cfg_obj: Config | None = None,
) -> ExtractedData:
    """
    Scan raw text for dates, amounts and named fields.
    Pure and deterministic; never raises. Empty input → empty result.
    """
    _cfg = cfg_obj or DEFAULT_CONFIG
    text = text or ""

    data = ExtractedData(
        dates=_scan_dates(text, _cfg),
        amounts=_scan_amounts(text, _cfg),
        fields=_scan_fields(text),
    )
    logger.debug(
        "extract_structured_data: %d dates, %d amounts, fields=%s",
        len(data.dates), len(data.amounts), sorted(data.fields),
    )
    return data


# ---------------------------------------------------------------------------
# to_extracted_fields
# ---------------------------------------------------------------------------

def to_extracted_fields(data: ExtractedData) -> list[ExtractedField]:
    """Dates, then amounts, then named fields; one record per match."""
    out: list[ExtractedField] = [
        ExtractedField(key=d.type, value=d.date, kind=FieldKind.DATE)
        for d in data.dates
    ]
    out.extend(
        ExtractedField(key=a.type, value=f"{a.amount:.2f}", kind=FieldKind.AMOUNT)
        for a in data.amounts
    )
    for key, value in data.fields.items():
        kind = FieldKind.NUMBER if _DIGITS_ONLY.match(value) else FieldKind.TEXT
        out.append(ExtractedField(key=key, value=value, kind=kind))
    return out
