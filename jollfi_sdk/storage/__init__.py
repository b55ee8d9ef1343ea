"""
Local mirror storage for stakes, payouts and users.
"""
from .base import (
    ASCENDING, DESCENDING, PAY_WINNERS_COLLECTION, STAKES_COLLECTION, USERS_COLLECTION,
    DocumentStore,
)
from .memory import InMemoryDocumentStore

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "DocumentStore",
    "InMemoryDocumentStore",
    "PAY_WINNERS_COLLECTION",
    "STAKES_COLLECTION",
    "USERS_COLLECTION",
    "get_document_store",
]


def get_document_store(uri=None, database="jollfi_games") -> DocumentStore:
    """
    Get a document store.

    Args:
        uri: MongoDB connection string; None selects the in-memory store
        database: Database name

    Returns:
        Store implementation
    """
    if not uri:
        return InMemoryDocumentStore()

    from .mongo import MongoDocumentStore
    return MongoDocumentStore(uri, database)
