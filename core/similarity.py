"""
core/similarity.py — Near-duplicate detection at ingestion time.

score = text_weight * jaccard(text) + name_weight * file_name_similarity(name)
      = 0.7 * text + 0.3 * name            (defaults)

Text similarity
  Jaccard index over lowercased whitespace tokens longer than 2 chars.
  Both token sets empty → 0.0.

Filename similarity
  Names lowercased and stripped of every non-[a-z0-9] char.
    equal               → 1.0
    one contains other  → containment_score (0.8, a constant, not a ratio)
    otherwise           → index-aligned equal chars / longer length
  The positional ratio is not an edit distance: a single inserted or shifted
  character misaligns everything after it, so renamed copies score low.

Match types (pure function of score)
  exact ≥ 0.9, high ≥ 0.7, medium ≥ 0.5. Lower scores are not reported.

Nothing here mutates a document; the caller decides keep-both / replace /
skip from the top result.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from config import DEFAULT_CONFIG, Config
from core.models import Document, MatchType, SimilarityResult

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def _token_set(text: str, min_chars: int) -> set[str]:
    return {w for w in (text or "").lower().split() if len(w) >= min_chars}


def jaccard_similarity(
    text1: str,
    text2: str,
    cfg_obj: Config | None = None,
) -> float:
    _cfg = cfg_obj or DEFAULT_CONFIG
    words1 = _token_set(text1, _cfg.min_token_chars)
    words2 = _token_set(text2, _cfg.min_token_chars)
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def file_name_similarity(
    name1: str,
    name2: str,
    cfg_obj: Config | None = None,
) -> float:
    _cfg = cfg_obj or DEFAULT_CONFIG
    clean1 = _NON_ALNUM.sub("", (name1 or "").lower())
    clean2 = _NON_ALNUM.sub("", (name2 or "").lower())

    if clean1 == clean2:
        return 1.0
    if clean1 in clean2 or clean2 in clean1:
        return _cfg.containment_score

    max_len = max(len(clean1), len(clean2))
    if max_len == 0:
        return 0.0
    matches = sum(1 for a, b in zip(clean1, clean2) if a == b)
    return matches / max_len


def match_type_for(
    score: float,
    cfg_obj: Config | None = None,
) -> MatchType | None:
    """Threshold label for a composite score; None below the medium threshold."""
    _cfg = cfg_obj or DEFAULT_CONFIG
    if score >= _cfg.exact_threshold:
        return MatchType.EXACT
    if score >= _cfg.high_threshold:
        return MatchType.HIGH
    if score >= _cfg.medium_threshold:
        return MatchType.MEDIUM
    return None


def format_similarity_percentage(score: float) -> str:
    return f"{round(score * 100)}%"


# ---------------------------------------------------------------------------
# find_duplicates
# ---------------------------------------------------------------------------

def find_duplicates(
    candidate_text: str,
    candidate_name: str,
    corpus: Iterable[Document],
    cfg_obj: Config | None = None,
) -> list[SimilarityResult]:
    """
    Score the candidate against every existing document.

    Returns results with score ≥ medium threshold, highest score first.
    Ties keep corpus order. Empty corpus / no candidates → [].
    """
    _cfg = cfg_obj or DEFAULT_CONFIG
    results: list[SimilarityResult] = []

    for doc in corpus:
        text_sim = jaccard_similarity(candidate_text, doc.raw_text, _cfg)
        name_sim = file_name_similarity(candidate_name, doc.name, _cfg)
        score = _cfg.text_weight * text_sim + _cfg.name_weight * name_sim
        # strip float noise from configured weights; keep within [0, 1]
        score = min(1.0, max(0.0, round(score, 12)))

        match_type = match_type_for(score, _cfg)
        if match_type is None:
            continue
        results.append(SimilarityResult(
            score=score,
            matched_document_id=doc.id,
            matched_document_name=doc.name,
            match_type=match_type,
        ))

    results.sort(key=lambda r: r.score, reverse=True)
    if results:
        logger.info(
            "find_duplicates: %s has %d candidate(s), top=%s (%.2f)",
            candidate_name, len(results),
            results[0].matched_document_id, results[0].score,
        )
    return results
