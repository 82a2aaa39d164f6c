"""
core/tags.py — Rule-based document tagging.

Maps raw text + filename + MIME type to at most max_tags semantic tags from a
closed vocabulary. Keyword matching only, no model.

detect_tags() pipeline
----------------------
  1. Filename contains "screenshot" / "screen shot" → screenshot
  2. Image MIME, not a screenshot, no keyword of any tag in the text and
     text shorter than photo_text_max_chars → photo
  3. Walk TAG_PRIORITY; a tag is appended when any of its keywords occurs in
     the lowercased text or filename (tags already present are skipped)
  4. Nothing assigned → other
  5. Truncate to max_tags (priority order preserved, lowest ranks drop)

get_primary_tag() ranks with PRIMARY_TAG_PRIORITY, which places screenshot,
photo and other after every content tag.

INVARIANT: never raises; always returns 1..max_tags tags.
"""

from __future__ import annotations

import logging
from enum import Enum

from config import DEFAULT_CONFIG, Config

logger = logging.getLogger(__name__)


class Tag(str, Enum):
    RECEIPT = "receipt"
    INVOICE = "invoice"
    BILL = "bill"
    MANUAL = "manual"
    ID_CARD = "id_card"
    BANK_STATEMENT = "bank_statement"
    CERTIFICATE = "certificate"
    CONTRACT = "contract"
    WARRANTY = "warranty"
    NOTE = "note"
    PHOTO = "photo"
    SCREENSHOT = "screenshot"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Priority tables
# ---------------------------------------------------------------------------

# Content tags in classification order
TAG_PRIORITY: tuple[Tag, ...] = (
    Tag.ID_CARD,
    Tag.BANK_STATEMENT,
    Tag.WARRANTY,
    Tag.CERTIFICATE,
    Tag.CONTRACT,
    Tag.INVOICE,
    Tag.RECEIPT,
    Tag.BILL,
    Tag.MANUAL,
    Tag.NOTE,
)

# Total order over the whole vocabulary
PRIMARY_TAG_PRIORITY: tuple[Tag, ...] = TAG_PRIORITY + (
    Tag.SCREENSHOT,
    Tag.PHOTO,
    Tag.OTHER,
)

_RANK: dict[Tag, int] = {tag: i for i, tag in enumerate(PRIMARY_TAG_PRIORITY)}


# ---------------------------------------------------------------------------
# Keyword table
# ---------------------------------------------------------------------------

TAG_KEYWORDS: dict[Tag, tuple[str, ...]] = {
    Tag.RECEIPT: (
        "receipt", "purchase", "bought", "store", "shop",
        "thank you for shopping", "transaction",
    ),
    Tag.INVOICE: (
        "invoice", "bill to", "payment terms", "net 30", "invoice number", "inv-",
    ),
    Tag.BILL: (
        "utility", "bill", "account number", "billing period", "amount due",
        "electric", "gas", "water", "phone",
    ),
    Tag.MANUAL: (
        "manual", "instructions", "user guide", "setup", "how to",
        "troubleshooting", "safety",
    ),
    Tag.ID_CARD: (
        "license", "identification", "id card", "passport", "dob",
        "date of birth", "expires", "id number",
    ),
    Tag.BANK_STATEMENT: (
        "bank", "statement", "balance", "deposits", "withdrawals", "account",
        "transactions",
    ),
    Tag.CERTIFICATE: (
        "certificate", "certifies", "completed", "awarded", "achievement",
        "diploma", "degree",
    ),
    Tag.CONTRACT: (
        "contract", "agreement", "terms", "parties", "effective date",
        "signature", "legally binding",
    ),
    Tag.WARRANTY: (
        "warranty", "guarantee", "coverage", "defects", "replacement", "repair",
        "warranty period",
    ),
    Tag.NOTE: (
        "note", "meeting", "agenda", "action items", "todo", "reminder", "memo",
    ),
    Tag.PHOTO: (),
    Tag.SCREENSHOT: ("screenshot",),
    Tag.OTHER: (),
}

TAG_LABELS: dict[Tag, str] = {
    Tag.RECEIPT:        "Receipt",
    Tag.INVOICE:        "Invoice",
    Tag.BILL:           "Bill",
    Tag.MANUAL:         "Manual",
    Tag.ID_CARD:        "ID Card",
    Tag.BANK_STATEMENT: "Bank Statement",
    Tag.CERTIFICATE:    "Certificate",
    Tag.CONTRACT:       "Contract",
    Tag.WARRANTY:       "Warranty",
    Tag.NOTE:           "Note",
    Tag.PHOTO:          "Photo",
    Tag.SCREENSHOT:     "Screenshot",
    Tag.OTHER:          "Other",
}

_SCREENSHOT_NAME_TOKENS = ("screenshot", "screen shot")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _has_any_keyword(lower_text: str) -> bool:
    return any(
        kw in lower_text
        for keywords in TAG_KEYWORDS.values()
        for kw in keywords
    )


def _matches(tag: Tag, lower_text: str, lower_name: str) -> bool:
    return any(kw in lower_text or kw in lower_name for kw in TAG_KEYWORDS[tag])


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def detect_tags(
    text: str,
    file_name: str,
    mime_type: str,
    cfg_obj: Config | None = None,
) -> list[Tag]:
    """
    Classify a document into 1..max_tags tags, highest priority first
    (after any screenshot/photo tag assigned from the file itself).
    """
    _cfg = cfg_obj or DEFAULT_CONFIG
    tags: list[Tag] = []
    lower_text = (text or "").lower()
    lower_name = (file_name or "").lower()

    if any(tok in lower_name for tok in _SCREENSHOT_NAME_TOKENS):
        tags.append(Tag.SCREENSHOT)

    if (mime_type or "").startswith("image/") and Tag.SCREENSHOT not in tags:
        if not _has_any_keyword(lower_text) and len(lower_text) < _cfg.photo_text_max_chars:
            tags.append(Tag.PHOTO)

    for tag in TAG_PRIORITY:
        if tag not in tags and _matches(tag, lower_text, lower_name):
            tags.append(tag)

    if not tags:
        tags.append(Tag.OTHER)

    if len(tags) > _cfg.max_tags:
        logger.debug(
            "detect_tags: %s matched %d tags, keeping %d",
            file_name, len(tags), _cfg.max_tags,
        )
    return tags[: _cfg.max_tags]


def get_primary_tag(tags: list[Tag]) -> Tag:
    """Highest-ranked tag in the set; other when the set is empty."""
    if not tags:
        return Tag.OTHER
    return min(tags, key=lambda t: _RANK[t])
