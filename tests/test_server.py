"""
tests/test_server.py — FastAPI server endpoint tests.

Uses FastAPI TestClient; the corpus snapshot travels in each request body,
so no storage fixtures are needed.

Run with: pytest tests/test_server.py -v
"""

from __future__ import annotations

from typing import Any

import pytest

from fastapi.testclient import TestClient

INVOICE_TEXT = "Invoice #INV-2024-001\nDue Date: 12/15/2024\nTotal: $1,650.00"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    from server import app
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


def _corpus() -> list[dict[str, Any]]:
    return [
        {
            "id": "inv-1",
            "name": "invoice.pdf",
            "rawText": INVOICE_TEXT,
            "createdAt": "2024-05-10T09:00:00Z",
            "tags": ["invoice"],
            "extractedFields": [{"key": "total", "value": "1650.00", "kind": "amount"}],
            "type": "pdf",
        },
        {
            "id": "rec-1",
            "name": "acme_receipt.jpg",
            "rawText": "ACME store receipt total 12.00",
            "createdAt": "2024-05-12T09:00:00Z",
            "tags": ["receipt"],
            "type": "image",
        },
    ]


# ---------------------------------------------------------------------------
# /health
# ---------------------------------------------------------------------------

def test_health_endpoint_returns_ok(client) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert "version" in data


# ---------------------------------------------------------------------------
# /api/extract + /api/classify
# ---------------------------------------------------------------------------

def test_extract_endpoint(client) -> None:
    resp = client.post("/api/extract", json={"text": INVOICE_TEXT})
    assert resp.status_code == 200
    data = resp.json()
    assert data["fields"] == {"invoiceNumber": "INV-2024-001"}
    assert data["dates"][0]["type"] == "due_date"
    assert data["dates"][0]["date"] == "12/15/2024"
    assert data["amounts"][0]["amount"] == pytest.approx(1650.0)


def test_classify_screenshot(client) -> None:
    resp = client.post("/api/classify", json={
        "text": "", "file_name": "Screenshot_2024.png", "mime_type": "image/png",
    })
    assert resp.status_code == 200
    assert resp.json() == {
        "tags": ["screenshot"], "primary_tag": "screenshot", "primary_label": "Screenshot",
    }


def test_classify_requires_file_name(client) -> None:
    resp = client.post("/api/classify", json={"text": "receipt"})
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# /api/duplicates + /api/ingest
# ---------------------------------------------------------------------------

def test_duplicates_endpoint(client) -> None:
    resp = client.post("/api/duplicates", json={
        "text": INVOICE_TEXT, "file_name": "invoice.pdf", "corpus": _corpus(),
    })
    assert resp.status_code == 200
    dups = resp.json()["duplicates"]
    assert len(dups) == 1
    assert dups[0]["matched_document_id"] == "inv-1"
    assert dups[0]["match_type"] == "exact"
    assert dups[0]["percentage"] == "100%"


def test_ingest_endpoint(client) -> None:
    resp = client.post("/api/ingest", json={
        "text": INVOICE_TEXT, "file_name": "invoice_copy.pdf",
        "mime_type": "application/pdf", "corpus": _corpus(),
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["title"] == "invoice_copy"
    assert data["type"] == "pdf"
    assert data["tags"] == ["invoice"]
    assert data["primary_tag"] == "invoice"
    assert data["reminders"] == [{
        "type": "due_date", "date": "12/15/2024",
        "description": "Due date for invoice_copy.pdf",
    }]
    assert data["duplicates"][0]["matched_document_id"] == "inv-1"


def test_invalid_corpus_record_returns_422(client) -> None:
    resp = client.post("/api/duplicates", json={
        "text": "x", "file_name": "x.pdf", "corpus": [{"name": "no-id"}],
    })
    assert resp.status_code == 422


def test_unknown_tag_in_corpus_returns_422(client) -> None:
    record = dict(_corpus()[0], tags=["mystery"])
    resp = client.post("/api/search", json={"query": "invoice", "corpus": [record]})
    assert resp.status_code == 422


def test_null_tags_in_corpus_are_accepted(client) -> None:
    record = dict(_corpus()[0], tags=None, extractedFields=None)
    resp = client.post("/api/search", json={"query": "inv-2024", "corpus": [record]})
    assert resp.status_code == 200
    assert resp.json()["documents"] == ["inv-1"]


def test_non_list_tags_in_corpus_returns_422(client) -> None:
    record = dict(_corpus()[0], tags="invoice")
    resp = client.post("/api/search", json={"query": "invoice", "corpus": [record]})
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# /api/search + /api/chat
# ---------------------------------------------------------------------------

def test_search_endpoint_filters_by_tag(client) -> None:
    resp = client.post("/api/search", json={"query": "receipts", "corpus": _corpus()})
    assert resp.status_code == 200
    data = resp.json()
    assert data["count"] == 1
    assert data["documents"] == ["rec-1"]
    assert data["groups"] == {"image": ["rec-1"]}


def test_search_endpoint_blank_query_returns_everything(client) -> None:
    resp = client.post("/api/search", json={"query": "", "corpus": _corpus()})
    assert resp.json()["documents"] == ["inv-1", "rec-1"]


def test_chat_endpoint_returns_answer_payload(client) -> None:
    resp = client.post("/api/chat", json={"query": "acme", "corpus": _corpus()})
    assert resp.status_code == 200
    data = resp.json()
    assert "found 1 that match" in data["content"]
    assert data["references"] == [{
        "documentId": "rec-1",
        "documentName": "acme_receipt.jpg",
        "snippet": "...ACME store receipt total 12.00...",
    }]


def test_chat_empty_corpus(client) -> None:
    resp = client.post("/api/chat", json={"query": "anything"})
    assert resp.status_code == 200
    assert resp.json()["references"] == []


def test_chat_empty_string_returns_400(client) -> None:
    resp = client.post("/api/chat", json={"query": "   ", "corpus": _corpus()})
    assert resp.status_code == 400


def test_chat_multi_word_question(client) -> None:
    resp = client.post("/api/chat", json={
        "query": "how much did I spend at acme", "corpus": _corpus(),
    })
    assert resp.status_code == 200
    data = resp.json()
    assert [r["documentId"] for r in data["references"]] == ["rec-1"]
    assert data["content"].startswith("I found 1 documents that might be relevant")
