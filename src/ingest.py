"""Seed the document store with service descriptions and scheduling rules.

Seeding only happens when the collection is empty (or unreachable, since
:meth:`DocumentStore.has_documents` cannot tell the two apart).
"""

from __future__ import annotations

import logging

from langchain_core.documents import Document

from src.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

SERVICE_DOCUMENTS: list[Document] = [
    Document(
        page_content=(
            "Our residential cleaning services include dusting, vacuuming, and sanitizing "
            "of all surfaces, including kitchens and bathrooms."
        ),
        metadata={"source": "Alice Smith"},
    ),
    Document(
        page_content=(
            "Our office cleaning services include daily, weekly, or monthly cleaning of your "
            "office space, including trash removal and restocking of supplies."
        ),
        metadata={"source": "Tech Corp"},
    ),
    Document(
        page_content=(
            "Our move-out cleaning services include a thorough cleaning of your old home, "
            "including the kitchen, bathrooms, and floors."
        ),
        metadata={"source": "John Doe"},
    ),
    Document(
        page_content=(
            "Our post-construction cleaning services include removal of debris, dust, and dirt "
            "from all surfaces, including floors, walls, and windows."
        ),
        metadata={"source": "XYZ Builders"},
    ),
    Document(
        page_content=(
            "Our carpet cleaning services include deep cleaning of your carpets using "
            "eco-friendly products and state-of-the-art equipment."
        ),
        metadata={"source": "Mary Johnson"},
    ),
]

SCHEDULING_RULES: list[str] = [
    "Can't book an appointment less than 48 hours in advance for new clients.",
    "Appointments can only be booked up to 3 months in advance.",
    "No appointments are available on Sundays.",
    "Appointments cannot be scheduled on observed holidays.",
    "No appointments are available on Wednesdays between 1:00 PM and 3:00 PM.",
    "Appointments cannot exceed 2 hours in length.",
    "Each appointment requires a 15-minute buffer before and after for preparation and cleanup.",
    "Recurring appointments cannot be scheduled for more than 6 months at a time.",
]


def scheduling_rule_documents(rules: list[str] | None = None) -> list[Document]:
    """Wrap rule texts as documents flagged ``date_time_scheduling_rule``."""
    return [
        Document(
            page_content=rule,
            metadata={"source": "Company Policy", "date_time_scheduling_rule": True},
        )
        for rule in (SCHEDULING_RULES if rules is None else rules)
    ]


def ingest_documents(store: DocumentStore, collection: str) -> bool:
    """Create and fill *collection* unless it already holds documents.

    Returns ``True`` when documents were added, ``False`` when skipped.
    """
    if store.has_documents(collection):
        logger.info("Documents already exist in %s. Skipping ingestion.", collection)
        return False

    logger.info("No existing documents found in %s. Creating collection and adding documents…", collection)
    try:
        store.create_collection(collection)
        store.add_documents(SERVICE_DOCUMENTS + scheduling_rule_documents(), collection)
    except Exception:
        logger.exception("Error ingesting documents into %s", collection)
        raise
    logger.info("Documents added successfully.")
    return True
