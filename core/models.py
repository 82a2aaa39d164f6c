"""
core/models.py — Read-mostly view of stored documents.

The storage collaborator owns persistence; the core only reads snapshots of
these records and returns new values for the caller to persist.

Document        — id, name, raw_text, tags, extracted_fields, created_at, type
ExtractedField  — {key, value, kind}
SimilarityResult — duplicate candidate produced at ingestion, never persisted
Reference       — chat reference entry {document_id, document_name, snippet}

Document.from_dict() accepts the storage layer's camelCase records
(rawText / extractedText, extractedFields, createdAt) as well as snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from core.tags import Tag


class FieldKind(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    NUMBER = "number"
    TEXT = "text"


class MatchType(str, Enum):
    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"


class FileType(str, Enum):
    IMAGE = "image"
    SCREENSHOT = "screenshot"
    PDF = "pdf"
    DOCUMENT = "document"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtractedField:
    key:   str
    value: str
    kind:  FieldKind

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ExtractedField":
        if not isinstance(d, dict) or "key" not in d or "value" not in d:
            raise ValueError(f"extracted field must be a {{key, value}} mapping, got {d!r}")
        # Older records carry the kind under "type"
        kind = d.get("kind") or d.get("type") or FieldKind.TEXT.value
        return cls(key=str(d["key"]), value=str(d["value"]), kind=FieldKind(kind))

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "value": self.value, "kind": self.kind.value}


def _list_field(d: dict[str, Any], *keys: str) -> list[Any]:
    """First present key among aliases; null → []. Anything but a list raises."""
    raw = next((d[k] for k in keys if k in d), None)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"{keys[0]} must be a list, got {type(raw).__name__}")
    return raw


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str) or not raw:
        raise ValueError(f"createdAt must be an ISO-8601 string, got {raw!r}")
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


@dataclass
class Document:
    id:               str
    name:             str
    raw_text:         str
    created_at:       datetime
    tags:             list[Tag] = field(default_factory=list)
    extracted_fields: list[ExtractedField] = field(default_factory=list)
    type:             FileType = FileType.OTHER

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Document":
        """Build a Document from a storage record. Raises ValueError if malformed."""
        if not isinstance(d, dict):
            raise ValueError(f"document record must be a mapping, got {type(d).__name__}")
        if not d.get("id"):
            raise ValueError("document record is missing 'id'")
        raw_text = d.get("raw_text", d.get("rawText", d.get("extractedText", "")))
        return cls(
            id               = str(d["id"]),
            name             = str(d.get("name") or ""),
            raw_text         = str(raw_text or ""),
            created_at       = _parse_timestamp(d.get("created_at", d.get("createdAt"))),
            tags             = [Tag(t) for t in _list_field(d, "tags")],
            extracted_fields = [
                ExtractedField.from_dict(f)
                for f in _list_field(d, "extracted_fields", "extractedFields")
            ],
            type             = FileType(d.get("type") or FileType.OTHER.value),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id":              self.id,
            "name":            self.name,
            "rawText":         self.raw_text,
            "tags":            [t.value for t in self.tags],
            "extractedFields": [f.to_dict() for f in self.extracted_fields],
            "createdAt":       self.created_at.isoformat(),
            "type":            self.type.value,
        }


@dataclass(frozen=True)
class SimilarityResult:
    score:                 float
    matched_document_id:   str
    matched_document_name: str
    match_type:            MatchType


@dataclass(frozen=True)
class Reference:
    document_id:   str
    document_name: str
    snippet:       str
