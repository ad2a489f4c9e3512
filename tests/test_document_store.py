"""Tests for the Qdrant document store (in-memory Qdrant, fake embeddings)."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from langchain_core.documents import Document
from qdrant_client.http.exceptions import UnexpectedResponse

from src.services.document_store import (
    DocumentStore,
    exclude_scheduling_rules,
    scheduling_rules_only,
)

COLLECTION = "test_services"


def _rule(text: str) -> Document:
    return Document(page_content=text, metadata={"source": "Company Policy", "date_time_scheduling_rule": True})


def _service(text: str) -> Document:
    return Document(page_content=text, metadata={"source": "Brochure"})


@pytest.fixture
def seeded_store(memory_store):
    memory_store.create_collection(COLLECTION)
    memory_store.add_documents(
        [
            _service("Residential cleaning with dusting and vacuuming."),
            _service("Carpet cleaning with eco-friendly products."),
            _service("Office cleaning including trash removal."),
            _rule("No appointments are available on Sundays."),
            _rule("Appointments cannot exceed 2 hours in length."),
        ],
        COLLECTION,
    )
    return memory_store


# ── Tests: collections ───────────────────────────────────────────────


class TestCreateCollection:
    def test_create_collection_is_idempotent(self, memory_store):
        memory_store.create_collection(COLLECTION)
        memory_store.create_collection(COLLECTION)
        assert memory_store.client.collection_exists(COLLECTION)

    def test_existing_collection_keeps_its_documents(self, seeded_store):
        seeded_store.create_collection(COLLECTION)
        assert seeded_store.has_documents(COLLECTION)

    def test_conflict_from_concurrent_create_is_tolerated(self):
        client = MagicMock()
        client.collection_exists.return_value = False
        client.create_collection.side_effect = UnexpectedResponse(
            status_code=409, reason_phrase="Conflict", content=b"", headers=None,
        )
        store = DocumentStore(client=client, embeddings=MagicMock())
        store.create_collection(COLLECTION)  # no exception

    def test_other_server_errors_propagate(self):
        client = MagicMock()
        client.collection_exists.return_value = False
        client.create_collection.side_effect = UnexpectedResponse(
            status_code=500, reason_phrase="Internal Server Error", content=b"", headers=None,
        )
        store = DocumentStore(client=client, embeddings=MagicMock())
        with pytest.raises(UnexpectedResponse):
            store.create_collection(COLLECTION)


class TestHasDocuments:
    def test_missing_collection_is_empty(self, memory_store):
        assert memory_store.has_documents("does_not_exist") is False

    def test_empty_collection_is_empty(self, memory_store):
        memory_store.create_collection(COLLECTION)
        assert memory_store.has_documents(COLLECTION) is False

    def test_populated_collection(self, seeded_store):
        assert seeded_store.has_documents(COLLECTION) is True

    def test_unreachable_server_is_reported_as_empty(self):
        client = MagicMock()
        client.get_collection.side_effect = ConnectionError("qdrant down")
        store = DocumentStore(client=client, embeddings=MagicMock())
        assert store.has_documents(COLLECTION) is False


# ── Tests: documents ─────────────────────────────────────────────────


class TestAddDocuments:
    def test_returns_one_id_per_document(self, memory_store):
        memory_store.create_collection(COLLECTION)
        ids = memory_store.add_documents([_service("a"), _service("b")], COLLECTION)
        assert len(ids) == 2
        assert len(set(ids)) == 2

    def test_empty_input_is_a_no_op(self, memory_store):
        assert memory_store.add_documents([], COLLECTION) == []

    def test_payload_keeps_content_and_metadata(self, memory_store):
        memory_store.create_collection(COLLECTION)
        memory_store.add_documents([_rule("No appointments on Sundays.")], COLLECTION)
        docs = memory_store.scroll(COLLECTION)
        assert docs[0].page_content == "No appointments on Sundays."
        assert docs[0].metadata["date_time_scheduling_rule"] is True


class TestSimilaritySearch:
    def test_returns_at_most_k_documents(self, seeded_store):
        docs = seeded_store.similarity_search("carpet", 2, COLLECTION)
        assert len(docs) == 2

    def test_exclusion_filter_drops_scheduling_rules(self, seeded_store):
        docs = seeded_store.similarity_search("anything", 10, COLLECTION, exclude_scheduling_rules())
        assert len(docs) == 3
        assert all(not doc.metadata.get("date_time_scheduling_rule") for doc in docs)

    def test_exact_text_is_the_nearest_match(self, seeded_store):
        docs = seeded_store.similarity_search("Carpet cleaning with eco-friendly products.", 1, COLLECTION)
        assert docs[0].page_content == "Carpet cleaning with eco-friendly products."


class TestScroll:
    def test_rule_filter_returns_only_rules(self, seeded_store):
        docs = seeded_store.scroll(COLLECTION, scheduling_rules_only())
        assert sorted(doc.page_content for doc in docs) == [
            "Appointments cannot exceed 2 hours in length.",
            "No appointments are available on Sundays.",
        ]

    def test_follows_pagination(self, memory_store, monkeypatch):
        monkeypatch.setattr("src.services.document_store.SCROLL_PAGE_SIZE", 2)
        memory_store.create_collection(COLLECTION)
        memory_store.add_documents([_rule(f"Rule {i}") for i in range(5)], COLLECTION)

        docs = memory_store.scroll(COLLECTION, scheduling_rules_only())
        assert sorted(doc.page_content for doc in docs) == [f"Rule {i}" for i in range(5)]
