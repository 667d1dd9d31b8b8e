"""Unit tests for the document-backed repositories."""
from contextlib import nullcontext
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from timevault.domain.entities.transaction import Transaction
from timevault.domain.entities.watch_listing import WatchListing
from timevault.domain.enums.listing_status import ListingStatus
from timevault.domain.enums.transaction_status import TransactionStatus
from timevault.domain.enums.user_role import UserRole
from timevault.domain.errors import DuplicateSerialNumberError
from timevault.infrastructure.memory.document_store import InMemoryDocumentStore
from timevault.infrastructure.repositories import collections
from timevault.infrastructure.repositories.codec import dump_datetime, load_datetime
from timevault.infrastructure.repositories.listing_repository import DocumentListingRepository
from timevault.infrastructure.repositories.serial_audit_log import DocumentSerialAuditLog
from timevault.infrastructure.repositories.transaction_repository import (
    DocumentTransactionRepository,
)
from timevault.infrastructure.repositories.user_repository import DocumentUserRepository


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


def test_datetimes_are_stored_as_sortable_utc_strings() -> None:
    value = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    dumped = dump_datetime(value)
    assert dumped == "2024-05-01T12:30:00.000000Z"
    assert load_datetime(dumped) == value


class TestListingRepository:
    @pytest.mark.asyncio
    async def test_document_layout(self, store: InMemoryDocumentStore) -> None:
        listing = WatchListing(
            seller_id="s1",
            title="Omega Seamaster",
            brand="Omega",
            price=Decimal("4200.50"),
            serial_number="1234567",
            condition="good",
        )
        await DocumentListingRepository(store).add(listing)

        document = await store.get(collections.WATCHES, listing.id)

        assert document is not None
        assert document["brand_key"] == "omega"
        assert document["price"] == 4200.5
        assert document["status"] == "active"

    @pytest.mark.asyncio
    async def test_save_does_not_touch_status_or_seller(self, store: InMemoryDocumentStore) -> None:
        repo = DocumentListingRepository(store)
        listing = WatchListing(seller_id="s1", brand="Rolex", serial_number="A1B2C3D4")
        await repo.add(listing)
        await repo.compare_and_set_status(listing.id, ListingStatus.ACTIVE, ListingStatus.PENDING)

        listing.title = "Renamed"
        listing.seller_id = "intruder"
        await repo.save(listing)

        stored = await repo.get_by_id(listing.id)
        assert stored is not None
        assert stored.title == "Renamed"
        assert stored.seller_id == "s1"
        assert stored.status is ListingStatus.PENDING

    @pytest.mark.asyncio
    async def test_compare_and_set(self, store: InMemoryDocumentStore) -> None:
        repo = DocumentListingRepository(store)
        listing = WatchListing(seller_id="s1")
        await repo.add(listing)

        assert await repo.compare_and_set_status(listing.id, ListingStatus.PENDING, ListingStatus.SOLD) is False
        assert await repo.compare_and_set_status(listing.id, ListingStatus.ACTIVE, ListingStatus.PENDING) is True
        assert await repo.compare_and_set_status("missing", ListingStatus.ACTIVE, ListingStatus.PENDING) is False

    @pytest.mark.asyncio
    async def test_open_serial_collision_is_a_duplicate_serial(
        self, store: InMemoryDocumentStore
    ) -> None:
        repo = DocumentListingRepository(store)
        await repo.add(WatchListing(seller_id="s1", brand="Rolex", serial_number="A1B2C3D4"))

        with pytest.raises(DuplicateSerialNumberError):
            await repo.add(WatchListing(seller_id="s2", brand="Rolex", serial_number="A1B2C3D4"))

    @pytest.mark.asyncio
    async def test_saving_onto_a_held_serial_is_a_duplicate_serial(
        self, store: InMemoryDocumentStore
    ) -> None:
        repo = DocumentListingRepository(store)
        await repo.add(WatchListing(seller_id="s1", brand="Rolex", serial_number="A1B2C3D4"))
        other = WatchListing(seller_id="s1", brand="Rolex", serial_number="B1B2C3D4")
        await repo.add(other)

        other.serial_number = "A1B2C3D4"
        with pytest.raises(DuplicateSerialNumberError):
            await repo.save(other)

        stored = await repo.get_by_id(other.id)
        assert stored is not None and stored.serial_number == "B1B2C3D4"


class TestTransactionRepository:
    @pytest.mark.asyncio
    async def test_compare_and_set_writes_status_and_completion(
        self, store: InMemoryDocumentStore
    ) -> None:
        repo = DocumentTransactionRepository(store)
        transaction = Transaction(
            buyer_id="b1",
            seller_id="s1",
            watch_id="w1",
            price=Decimal("99.99"),
            shipping_info={"address": "1 Main St"},
        )
        await repo.add(transaction)
        transaction.transition_to(TransactionStatus.COMPLETED)

        assert await repo.compare_and_set_status(transaction, expected=TransactionStatus.PENDING)

        stored = await repo.get_by_id(transaction.id)
        assert stored is not None
        assert stored.status is TransactionStatus.COMPLETED
        assert stored.price == Decimal("99.99")
        assert stored.completed_at is not None
        assert stored.shipping_info == {"address": "1 Main St"}

    @pytest.mark.asyncio
    async def test_compare_and_set_refuses_a_moved_transaction(
        self, store: InMemoryDocumentStore
    ) -> None:
        repo = DocumentTransactionRepository(store)
        transaction = Transaction(buyer_id="b1", seller_id="s1", watch_id="w1")
        await repo.add(transaction)
        transaction.transition_to(TransactionStatus.CANCELLED)
        await repo.compare_and_set_status(transaction, expected=TransactionStatus.PENDING)

        late = Transaction(id=transaction.id, status=TransactionStatus.COMPLETED)

        assert await repo.compare_and_set_status(late, expected=TransactionStatus.PENDING) is False
        stored = await repo.get_by_id(transaction.id)
        assert stored is not None and stored.status is TransactionStatus.CANCELLED


class TestUserRepository:
    @pytest.mark.asyncio
    async def test_update_only_touches_editable_fields(self, store: InMemoryDocumentStore) -> None:
        await store.create(
            collections.USERS,
            {"name": "Ann", "email": "ann@example.com", "role": "seller", "rating": 4.1},
            "u1",
        )
        repo = DocumentUserRepository(store)

        profile = await repo.update("u1", {"name": "Annie", "role": "admin"})

        assert profile is not None
        assert profile.name == "Annie"
        assert profile.role is UserRole.SELLER

    @pytest.mark.asyncio
    async def test_update_missing_user(self, store: InMemoryDocumentStore) -> None:
        assert await DocumentUserRepository(store).update("nobody", {"name": "x"}) is None

    @pytest.mark.asyncio
    async def test_unknown_role_falls_back_to_user(self, store: InMemoryDocumentStore) -> None:
        await store.create(collections.USERS, {"name": "Bo", "role": "superuser"}, "u2")
        profile = await DocumentUserRepository(store).get_by_id("u2")
        assert profile is not None and profile.role is UserRole.USER


class TestSerialAuditLog:
    @pytest.mark.asyncio
    async def test_records_each_serial_once(self, store: InMemoryDocumentStore) -> None:
        audit_log = DocumentSerialAuditLog(lambda: nullcontext(store))

        await audit_log.record("A1B2C3D4", brand="Rolex", model="Submariner")
        await audit_log.record("A1B2C3D4", brand="Rolex", model="Submariner")
        await audit_log.record("1234567", brand="", model="")

        records = await store.query(collections.SERIAL_VALIDATION)
        assert len(records) == 2
        unknown = next(r for r in records if r["serial_number"] == "1234567")
        assert unknown["brand"] == "Unknown"
        assert unknown["model"] == "Unknown"
