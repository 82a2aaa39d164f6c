"""
core/ingest.py — Per-upload ingestion pipeline.

ingest(raw_text, file_name, mime_type, corpus, cfg_obj, now) -> IngestResult
  Fixed step order (duplicate checking needs the candidate text):
    1. extract_structured_data()  → dates, amounts, named fields
    2. detect_tags()              → 1..max_tags tags + primary tag
    3. find_duplicates()          → candidates against the corpus snapshot
  Plus cheap derivations: coarse file type, display title, and reminder
  candidates for due / renewal / warranty / expiry dates.

Persistence belongs to the caller: IngestResult.to_document() builds the
record, the storage collaborator decides keep-both / replace / skip from
IngestResult.top_duplicate. Simultaneous uploads are independent calls.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from config import DEFAULT_CONFIG, Config
from core.extract import (
    ExtractedData,
    ExtractedDate,
    extract_structured_data,
    to_extracted_fields,
)
from core.models import Document, ExtractedField, FileType, SimilarityResult
from core.similarity import find_duplicates
from core.tags import Tag, detect_tags, get_primary_tag

logger = logging.getLogger(__name__)

# Date types that become reminders; issue dates never do
_REMINDER_LABELS: dict[str, str] = {
    "due_date":      "Due date",
    "renewal_date":  "Renewal date",
    "warranty_date": "Warranty expires",
    "expiry_date":   "Expires",
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReminderCandidate:
    type:        str    # due_date | renewal_date | warranty_date | expiry_date
    date:        str    # raw date string as extracted
    description: str


@dataclass
class IngestResult:
    file_name:   str
    title:       str
    file_type:   FileType
    raw_text:    str
    extracted:   ExtractedData
    fields:      list[ExtractedField]
    tags:        list[Tag]
    primary_tag: Tag
    duplicates:  list[SimilarityResult] = field(default_factory=list)
    reminders:   list[ReminderCandidate] = field(default_factory=list)
    created_at:  datetime = field(default_factory=datetime.now)

    @property
    def top_duplicate(self) -> SimilarityResult | None:
        return self.duplicates[0] if self.duplicates else None

    def to_document(self, document_id: str) -> Document:
        return Document(
            id=document_id,
            name=self.file_name,
            raw_text=self.raw_text,
            created_at=self.created_at,
            tags=list(self.tags),
            extracted_fields=list(self.fields),
            type=self.file_type,
        )


# ---------------------------------------------------------------------------
# Derivations
# ---------------------------------------------------------------------------

def infer_file_type(mime_type: str, file_name: str) -> FileType:
    mime = (mime_type or "").lower()
    if mime == "application/pdf":
        return FileType.PDF
    if mime.startswith("image/"):
        if "screenshot" in (file_name or "").lower():
            return FileType.SCREENSHOT
        return FileType.IMAGE
    if "document" in mime or "word" in mime or "text" in mime:
        return FileType.DOCUMENT
    return FileType.OTHER


def infer_title(file_name: str) -> str:
    """Filename without its last extension. Never raises."""
    stem = re.sub(r"\.[^/.]+$", "", file_name or "")
    return stem if stem else (file_name or "")


def reminder_candidates(
    dates: Iterable[ExtractedDate],
    file_name: str,
) -> list[ReminderCandidate]:
    return [
        ReminderCandidate(
            type=d.type,
            date=d.date,
            description=f"{_REMINDER_LABELS[d.type]} for {file_name}",
        )
        for d in dates
        if d.type in _REMINDER_LABELS
    ]


# ---------------------------------------------------------------------------
# ingest
# ---------------------------------------------------------------------------

def ingest(
    raw_text: str,
    file_name: str,
    mime_type: str,
    corpus: Iterable[Document],
    cfg_obj: Config | None = None,
    now: datetime | None = None,
) -> IngestResult:
    """
    Run extract → classify → duplicate check for one uploaded file.
    Never mutates the corpus.
    """
    _cfg = cfg_obj or DEFAULT_CONFIG

    # Step 1: extraction
    extracted = extract_structured_data(raw_text, _cfg)

    # Step 2: classification
    tags = detect_tags(raw_text, file_name, mime_type, _cfg)

    # Step 3: duplicate check
    duplicates = find_duplicates(raw_text, file_name, corpus, _cfg)

    result = IngestResult(
        file_name=file_name,
        title=infer_title(file_name),
        file_type=infer_file_type(mime_type, file_name),
        raw_text=raw_text or "",
        extracted=extracted,
        fields=to_extracted_fields(extracted),
        tags=tags,
        primary_tag=get_primary_tag(tags),
        duplicates=duplicates,
        reminders=reminder_candidates(extracted.dates, file_name),
        created_at=now or datetime.now(),
    )
    logger.info(
        "Ingested %s: type=%s tags=%s fields=%d reminders=%d duplicates=%d",
        file_name, result.file_type.value, [t.value for t in tags],
        len(result.fields), len(result.reminders), len(duplicates),
    )
    return result
