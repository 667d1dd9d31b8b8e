from datetime import datetime, timezone

from timevault.application.interfaces.document_store import Document, DocumentStore, OrderBy, Predicate
from timevault.application.interfaces.listing_repository import ListingFilters, ListingRepository
from timevault.domain.entities.watch_listing import WatchListing
from timevault.domain.enums.listing_status import ListingStatus
from timevault.domain.errors import DuplicateDocumentError, DuplicateSerialNumberError
from timevault.infrastructure.repositories import collections
from timevault.infrastructure.repositories.codec import (
    dump_datetime,
    dump_decimal,
    load_datetime,
    load_decimal,
)


def _to_domain(document: Document) -> WatchListing:
    return WatchListing(
        id=document["id"],
        seller_id=document.get("seller_id", ""),
        title=document.get("title", ""),
        brand=document.get("brand", ""),
        price=load_decimal(document.get("price")),
        serial_number=document.get("serial_number", ""),
        condition=document.get("condition", ""),
        description=document.get("description"),
        status=ListingStatus(document.get("status", ListingStatus.ACTIVE.value)),
        created_at=load_datetime(document.get("created_at")) or datetime.now(timezone.utc),
        updated_at=load_datetime(document.get("updated_at")) or datetime.now(timezone.utc),
    )


def _to_document(listing: WatchListing) -> Document:
    return {
        "seller_id": listing.seller_id,
        "title": listing.title,
        "brand": listing.brand,
        # Normalised copy for case-insensitive brand filtering
        "brand_key": listing.brand.lower(),
        "price": dump_decimal(listing.price),
        "serial_number": listing.serial_number,
        "condition": listing.condition,
        "description": listing.description,
        "status": listing.status.value,
        "created_at": dump_datetime(listing.created_at),
        "updated_at": dump_datetime(listing.updated_at),
    }


class DocumentListingRepository(ListingRepository):
    """Listing persistence over any DocumentStore."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def add(self, listing: WatchListing) -> None:
        try:
            listing.id = await self._store.create(
                collections.WATCHES, _to_document(listing), listing.id
            )
        except DuplicateDocumentError as exc:
            if exc.index != collections.WATCH_SERIAL_INDEX.name:
                raise
            raise DuplicateSerialNumberError(listing.serial_number) from exc

    async def get_by_id(self, listing_id: str) -> WatchListing | None:
        document = await self._store.get(collections.WATCHES, listing_id)
        return _to_domain(document) if document is not None else None

    async def save(self, listing: WatchListing) -> None:
        document = _to_document(listing)
        # Seller and creation time are immutable; status moves only by compare-and-set
        for key in ("seller_id", "created_at", "status"):
            document.pop(key)
        try:
            await self._store.update(collections.WATCHES, listing.id, document)
        except DuplicateDocumentError as exc:
            if exc.index != collections.WATCH_SERIAL_INDEX.name:
                raise
            raise DuplicateSerialNumberError(listing.serial_number) from exc

    async def compare_and_set_status(
        self,
        listing_id: str,
        expected: ListingStatus,
        new_status: ListingStatus,
    ) -> bool:
        return await self._store.update_if(
            collections.WATCHES,
            listing_id,
            expected={"status": expected.value},
            changes={
                "status": new_status.value,
                "updated_at": dump_datetime(datetime.now(timezone.utc)),
            },
        )

    async def find_by_serial(self, serial_number: str) -> list[WatchListing]:
        documents = await self._store.query(
            collections.WATCHES, [Predicate("serial_number", "==", serial_number)]
        )
        return [_to_domain(d) for d in documents]

    async def list_all(
        self,
        filters: ListingFilters,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WatchListing]:
        predicates: list[Predicate] = []
        if filters.status is not None:
            predicates.append(Predicate("status", "==", filters.status.value))
        if filters.brand:
            predicates.append(Predicate("brand_key", "==", filters.brand.lower()))
        if filters.condition:
            predicates.append(Predicate("condition", "==", filters.condition))
        if filters.seller_id:
            predicates.append(Predicate("seller_id", "==", filters.seller_id))
        if filters.min_price is not None:
            predicates.append(Predicate("price", ">=", dump_decimal(filters.min_price)))
        if filters.max_price is not None:
            predicates.append(Predicate("price", "<=", dump_decimal(filters.max_price)))

        documents = await self._store.query(
            collections.WATCHES,
            predicates,
            order_by=OrderBy("created_at", descending=True),
            limit=limit,
            offset=offset,
        )
        return [_to_domain(d) for d in documents]
