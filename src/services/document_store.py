"""Qdrant-backed document store with OpenAI embeddings.

Documents are stored one point per document with the payload
``{"content": <text>, "metadata": {...}}``.  Scheduling rules live in the
same collection as the service descriptions and are told apart by the
boolean ``metadata.date_time_scheduling_rule`` flag.

The store is constructed explicitly and handed to the workflows that need
it; tests inject an in-memory ``QdrantClient`` and fake embeddings.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from qdrant_client import QdrantClient, models
from qdrant_client.http.exceptions import UnexpectedResponse

from src.config import (
    EMBEDDING_DIM,
    EMBEDDING_MODEL_NAME,
    OPENAI_API_KEY,
    QDRANT_API_KEY,
    QDRANT_URL,
)
from src.services.metrics import metrics

logger = logging.getLogger(__name__)

SCHEDULING_RULE_KEY = "metadata.date_time_scheduling_rule"
CONTENT_KEY = "content"
METADATA_KEY = "metadata"
SCROLL_PAGE_SIZE = 100


def scheduling_rules_only() -> models.Filter:
    """Filter matching documents flagged as scheduling rules."""
    return models.Filter(
        must=[
            models.FieldCondition(key=SCHEDULING_RULE_KEY, match=models.MatchValue(value=True)),
        ]
    )


def exclude_scheduling_rules() -> models.Filter:
    """Filter matching every document that is *not* a scheduling rule."""
    return models.Filter(
        must_not=[
            models.FieldCondition(key=SCHEDULING_RULE_KEY, match=models.MatchValue(value=True)),
        ]
    )


def _build_embeddings() -> Embeddings:
    from langchain_openai import OpenAIEmbeddings  # noqa: PLC0415

    return OpenAIEmbeddings(model=EMBEDDING_MODEL_NAME, api_key=OPENAI_API_KEY)


class DocumentStore:
    """Vector store over a Qdrant client and a LangChain embedding model."""

    def __init__(
        self,
        client: QdrantClient | None = None,
        embeddings: Embeddings | None = None,
        *,
        vector_size: int = EMBEDDING_DIM,
    ):
        self.client = client if client is not None else QdrantClient(url=QDRANT_URL, api_key=QDRANT_API_KEY)
        self._embeddings = embeddings if embeddings is not None else _build_embeddings()
        self._vector_size = vector_size

    # ── Collections ──────────────────────────────────────────────────

    def create_collection(self, name: str) -> None:
        """Create a cosine-distance collection; an existing one is left as is."""
        if self.client.collection_exists(name):
            logger.info("Collection %s already exists, continuing", name)
            return
        try:
            with metrics.track("qdrant", "create_collection"):
                self.client.create_collection(
                    collection_name=name,
                    vectors_config=models.VectorParams(
                        size=self._vector_size,
                        distance=models.Distance.COSINE,
                    ),
                )
        except UnexpectedResponse as exc:
            # Another process created it between the check and the create.
            if exc.status_code != 409:
                raise
            logger.info("Collection %s was created concurrently, continuing", name)
            return
        logger.info("Created new collection: %s", name)

    def has_documents(self, name: str) -> bool:
        """Return ``True`` if the collection holds at least one point.

        Any failure (missing collection, unreachable server, ...) is reported
        as ``False``; callers cannot tell an outage from an empty collection.
        """
        try:
            info = self.client.get_collection(name)
        except Exception as exc:
            logger.debug("has_documents(%s) treated as empty: %s", name, exc)
            return False
        return (info.points_count or 0) > 0

    # ── Documents ────────────────────────────────────────────────────

    def add_documents(self, documents: Sequence[Document], name: str) -> list[str]:
        """Embed *documents* and upsert them into collection *name*.

        Returns the generated point IDs in input order.
        """
        if not documents:
            return []

        with metrics.track("openai", "embed_documents"):
            vectors = self._embeddings.embed_documents([doc.page_content for doc in documents])

        ids = [str(uuid.uuid4()) for _ in documents]
        points = [
            models.PointStruct(
                id=point_id,
                vector=vector,
                payload={CONTENT_KEY: doc.page_content, METADATA_KEY: dict(doc.metadata)},
            )
            for point_id, vector, doc in zip(ids, vectors, documents)
        ]
        with metrics.track("qdrant", "upsert"):
            self.client.upsert(collection_name=name, points=points)
        logger.info("Added %d documents to %s", len(points), name)
        return ids

    def similarity_search(
        self,
        query: str,
        k: int,
        name: str,
        query_filter: models.Filter | None = None,
    ) -> list[Document]:
        """Return up to *k* documents nearest to *query*, optionally filtered."""
        with metrics.track("openai", "embed_query"):
            vector = self._embeddings.embed_query(query)

        with metrics.track("qdrant", "query_points"):
            response = self.client.query_points(
                collection_name=name,
                query=vector,
                query_filter=query_filter,
                limit=k,
                with_payload=True,
            )
        return [_to_document(point.payload) for point in response.points]

    def scroll(self, name: str, query_filter: models.Filter | None = None) -> list[Document]:
        """Return every document matching *query_filter*, following scroll pages."""
        documents: list[Document] = []
        offset = None
        while True:
            with metrics.track("qdrant", "scroll"):
                points, offset = self.client.scroll(
                    collection_name=name,
                    scroll_filter=query_filter,
                    limit=SCROLL_PAGE_SIZE,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                )
            documents.extend(_to_document(point.payload) for point in points)
            if offset is None:
                return documents


def _to_document(payload: dict | None) -> Document:
    payload = payload or {}
    return Document(
        page_content=payload.get(CONTENT_KEY, ""),
        metadata=payload.get(METADATA_KEY) or {},
    )
