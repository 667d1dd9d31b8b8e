from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

import backoff
import structlog
from sqlalchemy import Select, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from timevault.application.interfaces.document_store import (
    Document,
    DocumentStore,
    OrderBy,
    Predicate,
    UniqueIndex,
)
from timevault.config import settings
from timevault.domain.errors import DuplicateDocumentError, StoreUnavailableError
from timevault.infrastructure.database.connection import AsyncSessionLocal
from timevault.infrastructure.database.models import DocumentModel
from timevault.infrastructure.repositories.collections import UNIQUE_INDEXES

logger = structlog.get_logger(__name__)


def _field(name: str, sample: Any) -> Any:
    """Typed accessor for a JSON body field, chosen from the comparison value."""
    element = DocumentModel.data[name]
    if isinstance(sample, bool):
        return element.as_boolean()
    if isinstance(sample, (int, float)):
        return element.as_float()
    return element.as_string()


def _condition(predicate: Predicate) -> Any:
    if predicate.value is None:
        return DocumentModel.data[predicate.field].as_string().is_(None)
    column = _field(predicate.field, predicate.value)
    if predicate.op == "==":
        return column == predicate.value
    if predicate.op == ">=":
        return column >= predicate.value
    return column <= predicate.value


def _to_document(model: DocumentModel) -> Document:
    return {**model.data, "id": model.id}


class SqlAlchemyDocumentStore(DocumentStore):
    """
    Document store backed by the ``documents`` table.

    Works inside the caller's session; committing is the session owner's
    job. Reads are retried when nothing has been written yet in the
    session, writes never are. Unique indexes are enforced by the database;
    ``unique_indexes`` only names them when a write is rejected.
    """

    def __init__(
        self,
        session: AsyncSession,
        read_attempts: int = settings.store_read_retries,
        unique_indexes: Sequence[UniqueIndex] = UNIQUE_INDEXES,
    ) -> None:
        self._session = session
        self._unique_indexes = tuple(unique_indexes)
        self._read_attempts = max(1, read_attempts)
        self._has_writes = False

    async def get(self, collection: str, doc_id: str) -> Document | None:
        stmt = select(DocumentModel).where(
            DocumentModel.collection == collection, DocumentModel.id == doc_id
        )
        models = await self._read(stmt)
        return _to_document(models[0]) if models else None

    async def create(self, collection: str, data: Document, doc_id: str | None = None) -> str:
        new_id = doc_id or data.get("id") or uuid4().hex
        body = {k: v for k, v in data.items() if k != "id"}
        self._has_writes = True
        try:
            self._session.add(DocumentModel(collection=collection, id=new_id, data=body))
            await self._session.flush()
        except IntegrityError as exc:
            raise self._duplicate(collection, exc) from exc
        except SQLAlchemyError as exc:
            logger.error("document_create_failed", collection=collection, error=str(exc))
            raise StoreUnavailableError(f"Could not create {collection} document") from exc
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
        self._has_writes = True
        try:
            result = await self._session.execute(
                select(DocumentModel)
                .where(DocumentModel.collection == collection, DocumentModel.id == doc_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            model = result.scalar_one_or_none()
            if model is None:
                return False
            if any(model.data.get(key) != value for key, value in expected.items()):
                return False
            # Reassign so the JSON column is flagged dirty
            model.data = {**model.data, **{k: v for k, v in changes.items() if k != "id"}}
            await self._session.flush()
        except IntegrityError as exc:
            raise self._duplicate(collection, exc) from exc
        except SQLAlchemyError as exc:
            logger.error(
                "document_update_failed", collection=collection, doc_id=doc_id, error=str(exc)
            )
            raise StoreUnavailableError(f"Could not update {collection}/{doc_id}") from exc
        return True

    async def query(
        self,
        collection: str,
        predicates: list[Predicate] | None = None,
        order_by: OrderBy | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Document]:
        stmt = select(DocumentModel).where(DocumentModel.collection == collection)
        for predicate in predicates or []:
            stmt = stmt.where(_condition(predicate))
        if order_by is not None:
            key = DocumentModel.data[order_by.field].as_string()
            stmt = stmt.order_by(key.desc() if order_by.descending else key.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        return [_to_document(m) for m in await self._read(stmt)]

    async def ping(self) -> None:
        try:
            await self._session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Database unreachable: {exc}") from exc

    def _duplicate(self, collection: str, exc: IntegrityError) -> DuplicateDocumentError:
        message = str(exc.orig)
        index = next((i.name for i in self._unique_indexes if i.name in message), None)
        logger.info("unique_index_violation", collection=collection, index=index)
        return DuplicateDocumentError(collection, index)

    async def _read(self, stmt: Select[tuple[DocumentModel]]) -> list[DocumentModel]:
        @backoff.on_exception(
            backoff.expo,
            StoreUnavailableError,
            max_tries=self._read_attempts,
            giveup=lambda _exc: self._has_writes,
            max_value=2,
        )
        async def attempt() -> list[DocumentModel]:
            try:
                result = await self._session.execute(stmt)
                return list(result.scalars().all())
            except SQLAlchemyError as exc:
                logger.warning("document_read_failed", error=str(exc))
                if not self._has_writes:
                    await self._session.rollback()
                raise StoreUnavailableError("Document store unavailable") from exc

        return await attempt()


@asynccontextmanager
async def standalone_store() -> AsyncIterator[SqlAlchemyDocumentStore]:
    """A store with its own session, committed on exit. For work outside a request."""
    async with AsyncSessionLocal() as session:
        try:
            yield SqlAlchemyDocumentStore(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
