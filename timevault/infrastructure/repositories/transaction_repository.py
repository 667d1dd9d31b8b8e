from datetime import datetime, timezone

from timevault.application.interfaces.document_store import Document, DocumentStore, OrderBy, Predicate
from timevault.application.interfaces.transaction_repository import TransactionRepository
from timevault.domain.entities.transaction import Transaction
from timevault.domain.enums.transaction_status import TransactionStatus
from timevault.infrastructure.repositories import collections
from timevault.infrastructure.repositories.codec import (
    dump_datetime,
    dump_decimal,
    load_datetime,
    load_decimal,
)


def _to_domain(document: Document) -> Transaction:
    return Transaction(
        id=document["id"],
        buyer_id=document.get("buyer_id", ""),
        seller_id=document.get("seller_id", ""),
        watch_id=document.get("watch_id", ""),
        price=load_decimal(document.get("price")),
        status=TransactionStatus(document.get("status", TransactionStatus.PENDING.value)),
        tracking_id=document.get("tracking_id"),
        shipping_info=document.get("shipping_info"),
        created_at=load_datetime(document.get("created_at")) or datetime.now(timezone.utc),
        updated_at=load_datetime(document.get("updated_at")) or datetime.now(timezone.utc),
        completed_at=load_datetime(document.get("completed_at")),
    )


def _to_document(transaction: Transaction) -> Document:
    return {
        "buyer_id": transaction.buyer_id,
        "seller_id": transaction.seller_id,
        "watch_id": transaction.watch_id,
        "price": dump_decimal(transaction.price),
        "status": transaction.status.value,
        "tracking_id": transaction.tracking_id,
        "shipping_info": transaction.shipping_info,
        "created_at": dump_datetime(transaction.created_at),
        "updated_at": dump_datetime(transaction.updated_at),
        "completed_at": dump_datetime(transaction.completed_at),
    }


class DocumentTransactionRepository(TransactionRepository):
    """Transaction persistence over any DocumentStore."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def add(self, transaction: Transaction) -> None:
        transaction.id = await self._store.create(
            collections.TRANSACTIONS, _to_document(transaction), transaction.id
        )

    async def get_by_id(self, transaction_id: str) -> Transaction | None:
        document = await self._store.get(collections.TRANSACTIONS, transaction_id)
        return _to_domain(document) if document is not None else None

    async def compare_and_set_status(
        self, transaction: Transaction, expected: TransactionStatus
    ) -> bool:
        # Parties, listing, price and shipping details are fixed at creation
        return await self._store.update_if(
            collections.TRANSACTIONS,
            transaction.id,
            expected={"status": expected.value},
            changes={
                "status": transaction.status.value,
                "updated_at": dump_datetime(transaction.updated_at),
                "completed_at": dump_datetime(transaction.completed_at),
            },
        )

    async def list_for_buyer(self, buyer_id: str) -> list[Transaction]:
        return await self._list_where("buyer_id", buyer_id)

    async def list_for_seller(self, seller_id: str) -> list[Transaction]:
        return await self._list_where("seller_id", seller_id)

    async def _list_where(self, field: str, value: str) -> list[Transaction]:
        documents = await self._store.query(
            collections.TRANSACTIONS,
            [Predicate(field, "==", value)],
            order_by=OrderBy("created_at", descending=True),
        )
        return [_to_domain(d) for d in documents]
