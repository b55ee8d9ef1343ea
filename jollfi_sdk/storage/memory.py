"""
In-memory document store.

Used when no MongoDB URI is configured and throughout the tests. Data lives
only as long as the process.
"""
import copy
import logging
import threading
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional

from ..exceptions import StorageError
from .base import DocumentStore, SortSpec

logger = logging.getLogger(__name__)

_UPDATE_OPERATORS = ("$set", "$setOnInsert")


def matches(document: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """
    Evaluate a filter against a document.

    Supports field equality, ``$or`` and ``$and``.

    Raises:
        StorageError: On an unsupported operator
    """
    for key, expected in query.items():
        if key == "$or":
            if not any(matches(document, sub) for sub in expected):
                return False
        elif key == "$and":
            if not all(matches(document, sub) for sub in expected):
                return False
        elif key.startswith("$"):
            raise StorageError(f"unsupported query operator: {key}")
        elif document.get(key) != expected:
            return False
    return True


class InMemoryDocumentStore(DocumentStore):
    """
    Thread-safe dict-of-lists document store.
    """

    def __init__(self):
        self._collections: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self._lock = threading.RLock()
        self.closed = False

    def _check_open(self) -> None:
        if self.closed:
            raise StorageError("store is closed")

    def insert_one(self, collection: str, document: Mapping[str, Any]) -> None:
        with self._lock:
            self._check_open()
            self._collections[collection].append(copy.deepcopy(dict(document)))

    def find(
        self,
        collection: str,
        query: Mapping[str, Any],
        sort: Optional[SortSpec] = None,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            self._check_open()
            found = [copy.deepcopy(doc) for doc in self._collections.get(collection, []) if matches(doc, query)]

        # Apply keys last to first; list.sort is stable
        for field, direction in reversed(list(sort or [])):
            found.sort(
                key=lambda doc: (doc.get(field) is not None, doc.get(field)),
                reverse=direction < 0,
            )

        if limit:
            found = found[:limit]
        return found

    def update_one(
        self,
        collection: str,
        query: Mapping[str, Any],
        update: Mapping[str, Any],
        upsert: bool = False,
    ) -> None:
        unknown = [op for op in update if op not in _UPDATE_OPERATORS]
        if unknown:
            raise StorageError(f"unsupported update operator(s): {', '.join(unknown)}")

        with self._lock:
            self._check_open()
            documents = self._collections[collection]
            for document in documents:
                if matches(document, query):
                    document.update(copy.deepcopy(dict(update.get("$set", {}))))
                    return

            if not upsert:
                return

            document = {k: v for k, v in query.items() if not k.startswith("$")}
            document.update(copy.deepcopy(dict(update.get("$setOnInsert", {}))))
            document.update(copy.deepcopy(dict(update.get("$set", {}))))
            documents.append(document)

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, []))

    def ping(self) -> bool:
        return not self.closed

    def close(self) -> None:
        self.closed = True
