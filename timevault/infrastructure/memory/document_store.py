"""
In-memory document store used in demo mode and in tests.

Documents are deep-copied on the way in and out so callers can never
mutate stored state by accident.
"""
import asyncio
import copy
from collections import defaultdict
from collections.abc import Sequence
from uuid import uuid4

import structlog

from timevault.application.interfaces.document_store import (
    Document,
    DocumentStore,
    OrderBy,
    Predicate,
    UniqueIndex,
)
from timevault.domain.errors import DuplicateDocumentError
from timevault.infrastructure.repositories.collections import UNIQUE_INDEXES

logger = structlog.get_logger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-of-dicts store; writes are serialised with a single asyncio.Lock.

    Unique indexes are checked under the same lock hold as the write they
    guard, as a database would.
    """

    def __init__(self, unique_indexes: Sequence[UniqueIndex] = UNIQUE_INDEXES) -> None:
        self._collections: dict[str, dict[str, Document]] = defaultdict(dict)
        self._unique_indexes = tuple(unique_indexes)
        self._lock = asyncio.Lock()

    async def get(self, collection: str, doc_id: str) -> Document | None:
        document = self._collections[collection].get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def create(self, collection: str, data: Document, doc_id: str | None = None) -> str:
        async with self._lock:
            new_id = doc_id or data.get("id") or uuid4().hex
            if new_id in self._collections[collection]:
                raise ValueError(f"Document {collection}/{new_id} already exists")
            document = {**copy.deepcopy(data), "id": new_id}
            self._check_unique(collection, document)
            self._collections[collection][new_id] = document
        logger.debug("document_created", collection=collection, doc_id=new_id)
        return new_id

    async def update(self, collection: str, doc_id: str, changes: Document) -> bool:
        return await self.update_if(collection, doc_id, {}, changes)

    async def update_if(
        self,
        collection: str,
        doc_id: str,
        expected: Document,
        changes: Document,
    ) -> bool:
        async with self._lock:
            document = self._collections[collection].get(doc_id)
            if document is None:
                return False
            if any(document.get(key) != value for key, value in expected.items()):
                return False
            updated = {**document, **copy.deepcopy(changes), "id": doc_id}
            self._check_unique(collection, updated)
            self._collections[collection][doc_id] = updated
        return True

    async def query(
        self,
        collection: str,
        predicates: list[Predicate] | None = None,
        order_by: OrderBy | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Document]:
        matches = [
            document
            for document in self._collections[collection].values()
            if all(p.matches(document) for p in predicates or [])
        ]
        if order_by is not None:
            # Missing values sort last regardless of direction
            present = [d for d in matches if d.get(order_by.field) is not None]
            missing = [d for d in matches if d.get(order_by.field) is None]
            present.sort(key=lambda d: d[order_by.field], reverse=order_by.descending)
            matches = present + missing

        end = offset + limit if limit is not None else None
        return [copy.deepcopy(d) for d in matches[offset:end]]

    def _check_unique(self, collection: str, candidate: Document) -> None:
        """Raise if candidate collides with another covered document. Caller holds the lock."""
        for index in self._unique_indexes:
            if index.collection != collection or not index.covers(candidate):
                continue
            value = candidate[index.field]
            for other in self._collections[collection].values():
                if other["id"] == candidate["id"] or not index.covers(other):
                    continue
                if other[index.field] == value:
                    logger.info(
                        "unique_index_violation",
                        index=index.name,
                        doc_id=candidate["id"],
                        held_by=other["id"],
                    )
                    raise DuplicateDocumentError(collection, index.name)
