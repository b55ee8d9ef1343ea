"""
Document store interface for the local mirror of on-chain actions.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

STAKES_COLLECTION = "stakes"
PAY_WINNERS_COLLECTION = "pay_winners"
USERS_COLLECTION = "users"

ASCENDING = 1
DESCENDING = -1

SortSpec = Sequence[Tuple[str, int]]


class DocumentStore(ABC):
    """
    Abstract base class for document stores.

    Filters and updates use the MongoDB query dialect subset the service
    needs: field equality, ``$or``, ``$set`` and ``$setOnInsert``.
    Implementations raise :class:`~jollfi_sdk.exceptions.StorageError` on
    failure.
    """

    @abstractmethod
    def insert_one(self, collection: str, document: Mapping[str, Any]) -> None:
        """Insert a document"""
        pass

    @abstractmethod
    def find(
        self,
        collection: str,
        query: Mapping[str, Any],
        sort: Optional[SortSpec] = None,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Find documents matching a query.

        Args:
            collection: Collection name
            query: Filter document
            sort: Sequence of ``(field, ASCENDING|DESCENDING)`` pairs
            limit: Maximum number of documents; 0 means no limit

        Returns:
            Matching documents without store-internal ids
        """
        pass

    @abstractmethod
    def update_one(
        self,
        collection: str,
        query: Mapping[str, Any],
        update: Mapping[str, Any],
        upsert: bool = False,
    ) -> None:
        """Update the first matching document, optionally inserting one"""
        pass

    def ping(self) -> bool:
        """Return True if the store is reachable"""
        return True

    def close(self) -> None:
        """Release resources held by the store"""
        pass
