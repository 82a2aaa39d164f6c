"""
core/query.py — Lexical search engine over a corpus snapshot.

Two tiers
---------
  Tier 1 — search_files(query, corpus)
    Plain case-insensitive substring match against name, raw text, tags and
    extracted-field keys/values. Blank query → whole corpus.

  Tier 2 — natural_language_search(query, corpus, now)
    plan_query() (core/router.py) → cumulative filter chain over the corpus:
      1. temporal predicates on created_at (each one narrows further)
      2. tag predicates (document must carry every requested tag)
      3. literal keyword (raw text must contain it)
    Fallback: if the chain leaves the result the same size as the corpus,
    nothing narrowed anything; return search_files() instead.

Ranking is positional: results keep corpus order. There is no relevance
score across results.

Chat references
---------------
  extract_snippet(query, text) — window of snippet_before / snippet_after
    chars around the first query token (len > 2) found in the text, wrapped
    in "..."; otherwise the first snippet_fallback_chars chars + "...".
  find_references(query, corpus) → list[Reference]
    Any-word match, not the search tiers: a document is referenced when its
    text, name or a tag contains any query word (len > 2). Corpus order,
    first max_references.

Stateless: every call recomputes from the snapshot it is given.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from config import DEFAULT_CONFIG, Config
from core.models import Document, FileType, Reference
from core.router import plan_query

logger = logging.getLogger(__name__)

_MIN_QUERY_TOKEN = 3     # query words shorter than this never anchor a snippet
_ELLIPSIS = "..."


# ---------------------------------------------------------------------------
# Tier 1: substring search
# ---------------------------------------------------------------------------

def _matches_substring(doc: Document, lower_query: str) -> bool:
    if lower_query in doc.name.lower() or lower_query in doc.raw_text.lower():
        return True
    if any(lower_query in tag.value.lower() for tag in doc.tags):
        return True
    return any(
        lower_query in f.value.lower() or lower_query in f.key.lower()
        for f in doc.extracted_fields
    )


def search_files(query: str, corpus: Iterable[Document]) -> list[Document]:
    docs = list(corpus)
    if not (query or "").strip():
        return docs
    lower_query = query.lower()
    return [d for d in docs if _matches_substring(d, lower_query)]


# ---------------------------------------------------------------------------
# Tier 2: natural-language search
# ---------------------------------------------------------------------------

def natural_language_search(
    query: str,
    corpus: Iterable[Document],
    now: datetime | None = None,
) -> list[Document]:
    docs = list(corpus)
    plan = plan_query(query, now)
    results = docs

    for pred in plan.temporal:
        results = [d for d in results if pred.matches(d.created_at)]

    for tag in plan.tags:
        results = [d for d in results if tag in d.tags]

    if plan.keyword:
        kw = plan.keyword.lower()
        results = [d for d in results if kw in d.raw_text.lower()]

    if len(results) == len(docs):
        logger.debug("natural_language_search(%r): nothing narrowed, substring fallback", query)
        return search_files(query, docs)
    return results


def search(
    query: str,
    corpus: Iterable[Document],
    now: datetime | None = None,
) -> list[Document]:
    """Public entry point: tier 2 with the tier 1 fallback."""
    docs = list(corpus)
    results = natural_language_search(query, docs, now)
    logger.debug("search(%r): %d of %d documents", query, len(results), len(docs))
    return results


def group_by_type(docs: Iterable[Document]) -> dict[FileType, list[Document]]:
    """Bucket results by coarse file type, preserving order inside each bucket."""
    groups: dict[FileType, list[Document]] = {}
    for d in docs:
        groups.setdefault(d.type, []).append(d)
    return groups


# ---------------------------------------------------------------------------
# Snippets + references
# ---------------------------------------------------------------------------

def _query_tokens(query: str) -> list[str]:
    return [w for w in (query or "").lower().split() if len(w) >= _MIN_QUERY_TOKEN]


def extract_snippet(
    query: str,
    text: str,
    cfg_obj: Config | None = None,
) -> str:
    _cfg = cfg_obj or DEFAULT_CONFIG
    text = text or ""
    lower_text = text.lower()
    tokens = _query_tokens(query)

    for token in tokens:
        idx = lower_text.find(token)
        if idx != -1:
            start = max(0, idx - _cfg.snippet_before)
            end = min(len(text), idx + len(token) + _cfg.snippet_after)
            return _ELLIPSIS + text[start:end].strip() + _ELLIPSIS

    return text[: _cfg.snippet_fallback_chars] + _ELLIPSIS


def _matches_any_token(doc: Document, tokens: list[str]) -> bool:
    lower_text = doc.raw_text.lower()
    lower_name = doc.name.lower()
    return any(
        tok in lower_text
        or tok in lower_name
        or any(tok in tag.value for tag in doc.tags)
        for tok in tokens
    )


def find_references(
    query: str,
    corpus: Iterable[Document],
    cfg_obj: Config | None = None,
) -> list[Reference]:
    """
    Chat references: documents whose text, name or tags contain any query
    word of 3+ chars. Corpus order, first max_references, with snippets.
    """
    _cfg = cfg_obj or DEFAULT_CONFIG
    tokens = _query_tokens(query)
    if not tokens:
        return []
    matched = [d for d in corpus if _matches_any_token(d, tokens)][: _cfg.max_references]
    return [
        Reference(
            document_id=d.id,
            document_name=d.name,
            snippet=extract_snippet(query, d.raw_text, _cfg),
        )
        for d in matched
    ]
