"""
MongoDB token storage implementation for Bifrost.

Every call opens its own client, does one thing and closes it again,
so the store holds no connection state between operations. Uniqueness
comes from the collection's ``_id``; the owner index only speeds up
owner lookups.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError
from pymongo.errors import PyMongoError

from .store import TokenRepository, Token, get_current_time
from ..common.utils import ensure_utc
from ..types.errors import DuplicateKeyError, StorageError


logger = logging.getLogger(__name__)

OWNER_INDEX_NAME = "token_consumer_idx"


@dataclass
class MongoConfig:
    """Connection settings for the MongoDB token store."""
    connection_string: str = "mongodb://localhost:27017"
    database: str = "bifrost"
    collection: str = "tokens"
    server_selection_timeout_ms: int = 5000


def _to_document(token: Token) -> Dict[str, Any]:
    return {
        '_id': token.id,
        'owner_id': token.owner_id,
        'source': token.source,
        'client_address': token.client_address,
        'issued_at': token.issued_at,
        'expires_at': token.expires_at,
    }


def _from_document(document: Dict[str, Any]) -> Token:
    return Token(
        id=document['_id'],
        owner_id=document.get('owner_id', ''),
        source=document.get('source', ''),
        client_address=document.get('client_address', ''),
        issued_at=ensure_utc(document['issued_at']),
        expires_at=ensure_utc(document['expires_at']),
    )


class MongoTokenStore(TokenRepository):
    """
    MongoDB-backed token store.

    ``update`` replaces the document unconditionally and creates it when
    missing, unlike the in-memory store which rejects unknown ids.
    """

    def __init__(self,
                 config: Optional[MongoConfig] = None,
                 client_factory: Optional[Callable[..., MongoClient]] = None):
        """
        Initialize the store and ensure the owner index exists.

        Args:
            config: Connection settings
            client_factory: Callable returning a client for a connection
                string; defaults to ``pymongo.MongoClient``

        Raises:
            StorageError: If the index cannot be created
        """
        self.config = config or MongoConfig()
        self._client_factory = client_factory or MongoClient

        with self._session("ensure_index") as collection:
            collection.create_index(
                [("owner_id", ASCENDING)],
                name=OWNER_INDEX_NAME,
                background=True,
                sparse=True,
            )
        logger.info(
            f"Ensured index {OWNER_INDEX_NAME} on "
            f"{self.config.database}.{self.config.collection}"
        )

    @contextmanager
    def _session(self, operation: str, key: str = "") -> Iterator[Collection]:
        """Open a client for a single operation and close it afterwards."""
        client = None
        try:
            client = self._client_factory(
                self.config.connection_string,
                tz_aware=True,
                serverSelectionTimeoutMS=self.config.server_selection_timeout_ms,
            )
            yield client[self.config.database][self.config.collection]
        except PyMongoError as e:
            logger.error(f"MongoDB {operation} failed: {e}")
            raise StorageError(operation, key=key, cause=e) from e
        finally:
            if client is not None:
                client.close()

    def get(self, token_id: str) -> Optional[Token]:
        """Retrieve a token by id."""
        with self._session("get", token_id) as collection:
            document = collection.find_one({'_id': token_id})
        if document is None:
            return None
        return _from_document(document)

    def get_by_owner(self, owner_id: str) -> List[Token]:
        """Get all tokens for an owner."""
        with self._session("get_by_owner", owner_id) as collection:
            documents = list(collection.find({'owner_id': owner_id}))
        return [_from_document(document) for document in documents]

    def insert(self, token: Token) -> None:
        """Store a new token."""
        token.issued_at = get_current_time()
        with self._session("insert", token.id) as collection:
            try:
                collection.insert_one(_to_document(token))
            except MongoDuplicateKeyError as e:
                raise DuplicateKeyError(token.id) from e
        logger.debug(f"Stored token {token.id} for owner {token.owner_id}")

    def update(self, token: Token, refresh_ttl: bool = False) -> None:
        """Replace the token document, creating it if missing."""
        with self._session("update", token.id) as collection:
            collection.replace_one({'_id': token.id}, _to_document(token), upsert=True)
        logger.debug(f"Updated token {token.id}")

    def delete(self, token_id: str) -> None:
        """Remove a token from the store."""
        with self._session("delete", token_id) as collection:
            collection.delete_one({'_id': token_id})

    def delete_by_owner(self, owner_id: str) -> None:
        """Remove every token of an owner."""
        with self._session("delete_by_owner", owner_id) as collection:
            result = collection.delete_many({'owner_id': owner_id})
        if result.deleted_count:
            logger.info(f"Deleted {result.deleted_count} tokens for owner {owner_id}")


def create_mongo_store(connection_string: str = "mongodb://localhost:27017",
                       **kwargs) -> MongoTokenStore:
    """
    Create a MongoDB token store.

    Args:
        connection_string: MongoDB connection URI
        **kwargs: Additional MongoConfig fields

    Returns:
        MongoTokenStore instance
    """
    return MongoTokenStore(MongoConfig(connection_string=connection_string, **kwargs))
