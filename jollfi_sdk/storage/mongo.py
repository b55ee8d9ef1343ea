"""
MongoDB-backed document store.

Requires the ``mongo`` extra (pymongo).
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from ..exceptions import StorageError
from ..utils import redact
from ._deps import ensure_pymongo_installed
from .base import (
    DESCENDING, PAY_WINNERS_COLLECTION, STAKES_COLLECTION, USERS_COLLECTION,
    DocumentStore, SortSpec,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10000


class MongoDocumentStore(DocumentStore):
    """
    Document store on a MongoDB database.

    Every pymongo failure is re-raised as :class:`StorageError`.
    """

    def __init__(
        self,
        uri: str,
        database: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        client: Any = None,
    ):
        """
        Args:
            uri: MongoDB connection string
            database: Database name
            timeout_ms: Server selection and socket timeout
            client: Pre-built ``MongoClient`` (mainly for tests)

        Raises:
            ImportError: If pymongo is not installed
        """
        ensure_pymongo_installed()
        from pymongo import MongoClient

        self.uri = uri
        self.database_name = database
        self.client = client or MongoClient(
            uri,
            serverSelectionTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
        )
        self.db = self.client[database]
        logger.info(f"Using MongoDB database {database} at {redact(uri, keep=10)}")

    def _run(self, what: str, func, *args, **kwargs):
        from pymongo.errors import PyMongoError

        try:
            return func(*args, **kwargs)
        except PyMongoError as e:
            raise StorageError(f"{what} failed: {e}") from e

    def insert_one(self, collection: str, document: Mapping[str, Any]) -> None:
        # insert_one mutates its argument by adding _id
        self._run(f"insert into {collection}", self.db[collection].insert_one, dict(document))

    def find(
        self,
        collection: str,
        query: Mapping[str, Any],
        sort: Optional[SortSpec] = None,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        def _query() -> List[Dict[str, Any]]:
            cursor = self.db[collection].find(dict(query), {"_id": 0})
            if sort:
                cursor = cursor.sort(list(sort))
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)

        return self._run(f"find in {collection}", _query)

    def update_one(
        self,
        collection: str,
        query: Mapping[str, Any],
        update: Mapping[str, Any],
        upsert: bool = False,
    ) -> None:
        self._run(
            f"update in {collection}",
            self.db[collection].update_one, dict(query), dict(update), upsert=upsert,
        )

    def ensure_indexes(self) -> None:
        """Create participant, timestamp and digest indexes used by history queries"""
        for name in (STAKES_COLLECTION, PAY_WINNERS_COLLECTION):
            coll = self.db[name]
            self._run(f"index {name}", coll.create_index, [("requester_address", 1)])
            self._run(f"index {name}", coll.create_index, [("accepter_address", 1)])
            self._run(f"index {name}", coll.create_index, [("timestamp", DESCENDING)])
            self._run(f"index {name}", coll.create_index, [("transaction_digest", 1)], unique=True)
        self._run(f"index {USERS_COLLECTION}", self.db[USERS_COLLECTION].create_index,
                  [("address", 1)], unique=True)

    def ping(self) -> bool:
        from pymongo.errors import PyMongoError

        try:
            self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def close(self) -> None:
        self.client.close()
