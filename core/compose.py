"""
core/compose.py — Chat answer composer.

ChatAnswer — {content, references} returned to the chat screen.

compose_answer(query, corpus, cfg_obj)
  1. find_references() → up to max_references documents sharing any query
     word, with snippets.
  2. No references → "no documents yet" / "nothing matched" message.
  3. First matching intent picks the template:
       money    (total, spend, amount, how much) → sum of amount fields
       dates    (due, deadline, expire, when)    → count of date fields
       finance  (receipt, invoice, bill)         → count of finance-tagged docs
       warranty (warranty, guarantee)            → count of warranty docs
       else                                      → generic "found M of N"

Hard rule:
  References come from the search results only. The content string is a
  deterministic template, there is no language model behind it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from config import DEFAULT_CONFIG, Config
from core.models import Document, FieldKind, Reference
from core.query import find_references
from core.tags import Tag

logger = logging.getLogger(__name__)

_MONEY_WORDS    = ("total", "spend", "amount", "how much")
_DATE_WORDS     = ("due", "deadline", "expire", "when")
_FINANCE_WORDS  = ("receipt", "invoice", "bill")
_WARRANTY_WORDS = ("warranty", "guarantee")

_FINANCE_TAGS = frozenset({Tag.RECEIPT, Tag.INVOICE, Tag.BILL})


# ---------------------------------------------------------------------------
# ChatAnswer
# ---------------------------------------------------------------------------

@dataclass
class ChatAnswer:
    content:    str
    references: list[Reference]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _sum_amounts(docs: list[Document]) -> tuple[float, int]:
    """Total of parseable amount fields and how many contributed."""
    total = 0.0
    count = 0
    for d in docs:
        for f in d.extracted_fields:
            if f.kind is not FieldKind.AMOUNT:
                continue
            try:
                total += float(f.value.replace("$", "").replace(",", ""))
            except ValueError:
                continue
            count += 1
    return total, count


def _count_dates(docs: list[Document]) -> int:
    return sum(
        1 for d in docs for f in d.extracted_fields if f.kind is FieldKind.DATE
    )


def _empty_answer(query: str, corpus_size: int) -> str:
    if corpus_size == 0:
        return (
            "I don't have any documents to search through yet. Try uploading "
            "some files first - I can help you find information across "
            "receipts, invoices, contracts, and other documents once they're "
            "in your collection."
        )
    return (
        f"I searched through your {corpus_size} documents but couldn't find "
        f"anything matching \"{query}\". Try being more specific or using "
        "different keywords. I can search through file names, tags, and "
        "extracted text."
    )


# ---------------------------------------------------------------------------
# Primary public API
# ---------------------------------------------------------------------------

def compose_answer(
    query: str,
    corpus: Iterable[Document],
    cfg_obj: Config | None = None,
) -> ChatAnswer:
    _cfg = cfg_obj or DEFAULT_CONFIG
    docs = list(corpus)
    references = find_references(query, docs, _cfg)

    if not references:
        return ChatAnswer(content=_empty_answer(query, len(docs)), references=[])

    q = query.lower()
    ref_ids = {r.document_id for r in references}
    referenced = [d for d in docs if d.id in ref_ids]
    n = len(references)

    if any(w in q for w in _MONEY_WORDS):
        total, count = _sum_amounts(referenced)
        if count:
            content = (
                f"Based on {n} relevant documents, I found financial information. "
                f"The total across these documents is approximately ${total:.2f}. "
                "Here are the specific documents I analyzed:"
            )
        else:
            content = (
                f"I found {n} documents that might be relevant to your query "
                "about amounts. Here's what I found:"
            )

    elif any(w in q for w in _DATE_WORDS):
        dates = _count_dates(referenced)
        if dates:
            content = (
                f"I found {dates} date-related entries across your documents. "
                "Here are the relevant files that contain date information:"
            )
        else:
            content = f"I found {n} potentially relevant documents. Here's what I found:"

    elif any(w in q for w in _FINANCE_WORDS):
        finance = sum(1 for d in docs if _FINANCE_TAGS & set(d.tags))
        content = (
            f"You have {finance} documents tagged as receipts, invoices, or bills. "
            "Here are the most relevant ones based on your query:"
        )

    elif any(w in q for w in _WARRANTY_WORDS):
        warranties = sum(1 for d in docs if Tag.WARRANTY in d.tags)
        if warranties:
            content = (
                f"I found {warranties} warranty documents. "
                "Here's the information I extracted:"
            )
        else:
            content = (
                "I searched for warranty information and found "
                f"{n} potentially relevant documents:"
            )

    else:
        content = (
            f"I searched across all {len(docs)} documents in your collection and "
            f"found {n} that match your query. Here's what I found:"
        )

    logger.debug("compose_answer(%r): %d references", query, n)
    return ChatAnswer(content=content, references=references)
