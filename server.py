"""
server.py — SnapKeep document intelligence FastAPI server.

Stateless host around the core: every request carries the corpus snapshot it
should be evaluated against. Storage stays with the calling app.

Endpoints
---------
  GET  /health          — liveness check {status, version}
  POST /api/extract     — dates / amounts / named fields from raw text
  POST /api/classify    — tags + primary tag
  POST /api/duplicates  — near-duplicate candidates against the corpus
  POST /api/ingest      — extract → classify → duplicates in one call
  POST /api/search      — natural-language search with substring fallback
  POST /api/chat        — templated answer + up to 5 references

CORS: allow all origins (called from the mobile/web app).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config import configure_logging, load_config
from core.compose import compose_answer
from core.extract import extract_structured_data
from core.ingest import ingest
from core.models import Document, SimilarityResult
from core.query import group_by_type, search
from core.similarity import find_duplicates, format_similarity_percentage
from core.tags import TAG_LABELS, detect_tags, get_primary_tag

cfg = load_config()
configure_logging(cfg)
logger = logging.getLogger(__name__)

_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("SnapKeep server ready on %s:%s", cfg.server_host, cfg.server_port)
    yield
    logger.info("SnapKeep server shutting down")


# ---------------------------------------------------------------------------
# App + CORS
# ---------------------------------------------------------------------------

app = FastAPI(title="SnapKeep", version=_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class ExtractRequest(BaseModel):
    text: str


class ClassifyRequest(BaseModel):
    text:      str = ""
    file_name: str
    mime_type: str = ""


class DuplicatesRequest(BaseModel):
    text:      str
    file_name: str
    corpus:    list[dict[str, Any]] = []


class IngestRequest(BaseModel):
    text:      str
    file_name: str
    mime_type: str = ""
    corpus:    list[dict[str, Any]] = []


class QueryRequest(BaseModel):
    query:  str
    corpus: list[dict[str, Any]] = []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_corpus(records: list[dict[str, Any]]) -> list[Document]:
    try:
        return [Document.from_dict(r) for r in records]
    except (KeyError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid corpus record: {e}")


def _duplicate_item(r: SimilarityResult) -> dict[str, Any]:
    return {
        "score":                 r.score,
        "percentage":            format_similarity_percentage(r.score),
        "matched_document_id":   r.matched_document_id,
        "matched_document_name": r.matched_document_name,
        "match_type":            r.match_type.value,
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
async def health() -> dict[str, Any]:
    return {"status": "ok", "version": _VERSION}


@app.post("/api/extract")
async def api_extract(req: ExtractRequest) -> dict[str, Any]:
    return extract_structured_data(req.text, cfg).to_dict()


@app.post("/api/classify")
async def api_classify(req: ClassifyRequest) -> dict[str, Any]:
    tags = detect_tags(req.text, req.file_name, req.mime_type, cfg)
    primary = get_primary_tag(tags)
    return {
        "tags":          [t.value for t in tags],
        "primary_tag":   primary.value,
        "primary_label": TAG_LABELS[primary],
    }


@app.post("/api/duplicates")
async def api_duplicates(req: DuplicatesRequest) -> dict[str, Any]:
    corpus = _load_corpus(req.corpus)
    results = find_duplicates(req.text, req.file_name, corpus, cfg)
    return {"duplicates": [_duplicate_item(r) for r in results]}


@app.post("/api/ingest")
async def api_ingest(req: IngestRequest) -> dict[str, Any]:
    corpus = _load_corpus(req.corpus)
    result = ingest(req.text, req.file_name, req.mime_type, corpus, cfg)
    return {
        "file_name":   result.file_name,
        "title":       result.title,
        "type":        result.file_type.value,
        "tags":        [t.value for t in result.tags],
        "primary_tag": result.primary_tag.value,
        "extracted":   result.extracted.to_dict(),
        "fields":      [f.to_dict() for f in result.fields],
        "duplicates":  [_duplicate_item(r) for r in result.duplicates],
        "reminders":   [
            {"type": r.type, "date": r.date, "description": r.description}
            for r in result.reminders
        ],
    }


@app.post("/api/search")
async def api_search(req: QueryRequest) -> dict[str, Any]:
    corpus = _load_corpus(req.corpus)
    results = search(req.query, corpus)
    return {
        "query":     req.query,
        "count":     len(results),
        "documents": [d.id for d in results],
        "groups":    {
            file_type.value: [d.id for d in docs]
            for file_type, docs in group_by_type(results).items()
        },
    }


@app.post("/api/chat")
async def api_chat(req: QueryRequest) -> dict[str, Any]:
    if not req.query.strip():
        raise HTTPException(status_code=400, detail="Query cannot be empty.")
    corpus = _load_corpus(req.corpus)
    answer = compose_answer(req.query, corpus, cfg)
    return {
        "content":    answer.content,
        "references": [
            {
                "documentId":   r.document_id,
                "documentName": r.document_name,
                "snippet":      r.snippet,
            }
            for r in answer.references
        ],
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "server:app",
        host=cfg.server_host,
        port=cfg.server_port,
        workers=1,
        reload=False,
    )
