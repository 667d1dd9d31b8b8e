import asyncio
from dataclasses import dataclass
from decimal import Decimal

import structlog

from timevault.application.interfaces.listing_repository import ListingFilters, ListingRepository
from timevault.application.interfaces.serial_audit_log import SerialAuditLog
from timevault.domain.entities.caller import Caller
from timevault.domain.entities.watch_listing import WatchListing
from timevault.domain.enums.listing_status import ListingStatus
from timevault.domain.errors import (
    ConcurrentUpdateError,
    DuplicateSerialNumberError,
    ForbiddenError,
    InvalidSerialFormatError,
    NotFoundError,
    ValidationError,
)
from timevault.domain.serials.serial_rules import validate_serial_number

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 200
FEATURED_COUNT = 6
REMOVE_ATTEMPTS = 3

# Strong references to in-flight serial audit writes; the event loop only keeps weak ones
_side_writes: set[asyncio.Task[None]] = set()


@dataclass
class CreateListingInput:
    title: str
    brand: str
    price: Decimal
    serial_number: str
    condition: str
    description: str | None = None


@dataclass
class UpdateListingInput:
    title: str | None = None
    brand: str | None = None
    price: Decimal | None = None
    serial_number: str | None = None
    condition: str | None = None
    description: str | None = None
    # Keys the client actually sent; when given, a None value clears the field
    provided_fields: frozenset[str] | None = None

    def provided(self) -> dict[str, object]:
        values = {k: v for k, v in self.__dict__.items() if k != "provided_fields"}
        if self.provided_fields is None:
            return {k: v for k, v in values.items() if v is not None}
        return {k: v for k, v in values.items() if k in self.provided_fields}


class ListingManager:
    """
    Owns creation, editing and removal of watch listings.

    Enforces the serial number format for the listing's brand and keeps at
    most one active or pending listing per serial number.
    """

    def __init__(
        self,
        listing_repo: ListingRepository,
        serial_audit_log: SerialAuditLog | None = None,
    ) -> None:
        self._listing_repo = listing_repo
        self._serial_audit_log = serial_audit_log

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def create_listing(self, seller: Caller, input_data: CreateListingInput) -> WatchListing:
        _require_text(title=input_data.title, brand=input_data.brand, condition=input_data.condition)
        _require_non_negative(input_data.price)

        _ensure_valid_serial(input_data.brand, input_data.serial_number)
        await self._ensure_serial_available(input_data.serial_number)

        listing = WatchListing.create(
            seller_id=seller.id,
            title=input_data.title.strip(),
            brand=input_data.brand.strip(),
            price=input_data.price,
            serial_number=input_data.serial_number,
            condition=input_data.condition.strip(),
            description=input_data.description,
        )
        # A concurrent create of the same serial is rejected by the store's unique index
        await self._listing_repo.add(listing)

        logger.info(
            "listing_created",
            listing_id=listing.id,
            seller_id=seller.id,
            brand=listing.brand,
        )

        self._record_serial_in_background(listing)
        return listing

    async def update_listing(
        self, caller: Caller, listing_id: str, input_data: UpdateListingInput
    ) -> WatchListing:
        listing = await self._get_listing(listing_id)

        if caller.id != listing.seller_id:
            raise ForbiddenError("You can only update your own listings")

        changes = input_data.provided()
        for name in ("title", "brand", "condition"):
            if name in changes:
                _require_text(**{name: changes[name]})
        if "price" in changes:
            _require_non_negative(changes["price"])
        if "serial_number" in changes and not changes["serial_number"]:
            raise ValidationError("Serial number is required")

        new_serial = changes.get("serial_number")
        if new_serial is not None and new_serial != listing.serial_number:
            _ensure_valid_serial(str(changes.get("brand") or listing.brand), str(new_serial))
            await self._ensure_serial_available(str(new_serial), exclude_listing_id=listing.id)

        applied = listing.apply_changes(changes)
        # A serial claimed concurrently is rejected by the store's unique index
        await self._listing_repo.save(listing)

        logger.info("listing_updated", listing_id=listing.id, fields=sorted(applied))
        return listing

    async def remove_listing(self, caller: Caller, listing_id: str) -> WatchListing:
        for _ in range(REMOVE_ATTEMPTS):
            listing = await self._get_listing(listing_id)

            if caller.id != listing.seller_id and not caller.is_admin:
                raise ForbiddenError("You can only delete your own listings")

            if listing.status is ListingStatus.REMOVED:
                return listing

            previous = listing.status
            # Raises InvalidStateTransitionError while a purchase holds the listing
            listing.transition_to(ListingStatus.REMOVED)
            removed = await self._listing_repo.compare_and_set_status(
                listing.id, expected=previous, new_status=ListingStatus.REMOVED
            )
            if removed:
                logger.info("listing_removed", listing_id=listing.id, removed_by=caller.id)
                return listing

            logger.info("listing_remove_retry", listing_id=listing_id, expected=previous.value)

        raise ConcurrentUpdateError("watch", listing_id)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_listing(self, listing_id: str) -> WatchListing:
        return await self._get_listing(listing_id)

    async def list_listings(
        self,
        filters: ListingFilters,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WatchListing]:
        if (
            filters.min_price is not None
            and filters.max_price is not None
            and filters.min_price > filters.max_price
        ):
            raise ValidationError("min_price cannot be greater than max_price")

        limit = max(1, min(limit, MAX_PAGE_SIZE))
        return await self._listing_repo.list_all(filters, limit=limit, offset=max(offset, 0))

    async def list_by_seller(
        self, seller_id: str, *, limit: int = 50, offset: int = 0
    ) -> list[WatchListing]:
        """All of a seller's listings in any status, newest first."""
        return await self._listing_repo.list_all(
            ListingFilters(status=None, seller_id=seller_id),
            limit=max(1, min(limit, MAX_PAGE_SIZE)),
            offset=max(offset, 0),
        )

    async def featured_listings(self) -> list[WatchListing]:
        return await self._listing_repo.list_all(ListingFilters(), limit=FEATURED_COUNT)

    # -------------------------------------------------------------------------
    # Side writes
    # -------------------------------------------------------------------------

    def _record_serial_in_background(self, listing: WatchListing) -> None:
        if self._serial_audit_log is None:
            return
        task = asyncio.create_task(_record_serial(self._serial_audit_log, listing))
        _side_writes.add(task)
        task.add_done_callback(_side_writes.discard)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _get_listing(self, listing_id: str) -> WatchListing:
        listing = await self._listing_repo.get_by_id(listing_id)
        if listing is None:
            raise NotFoundError("watch", listing_id)
        return listing

    async def _ensure_serial_available(
        self, serial_number: str, exclude_listing_id: str | None = None
    ) -> None:
        holders = [
            existing
            for existing in await self._listing_repo.find_by_serial(serial_number)
            if existing.status.holds_serial and existing.id != exclude_listing_id
        ]
        if holders:
            logger.info(
                "duplicate_serial_rejected",
                serial_number=serial_number,
                held_by=holders[0].id,
            )
            raise DuplicateSerialNumberError(serial_number)


def _ensure_valid_serial(brand: str, serial_number: str) -> None:
    result = validate_serial_number(brand, serial_number)
    if not result.valid:
        raise InvalidSerialFormatError(result.message)


def _require_text(**fields: object) -> None:
    for name, value in fields.items():
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{name.capitalize()} is required")


def _require_non_negative(price: Decimal | None) -> None:
    if price is None or price < 0:
        raise ValidationError("Price must be a non-negative number")


async def _record_serial(audit_log: SerialAuditLog, listing: WatchListing) -> None:
    try:
        await audit_log.record(listing.serial_number, brand=listing.brand, model=listing.title)
        logger.debug("serial_recorded", serial_number=listing.serial_number)
    except Exception:
        # Best-effort: the listing already exists and must not be failed
        logger.exception(
            "failed_to_record_serial",
            listing_id=listing.id,
            serial_number=listing.serial_number,
        )


async def flush_side_writes() -> None:
    """Wait for outstanding serial audit writes."""
    loop = asyncio.get_running_loop()
    # Only tasks on this loop can be awaited from here
    pending = [task for task in _side_writes if task.get_loop() is loop]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
