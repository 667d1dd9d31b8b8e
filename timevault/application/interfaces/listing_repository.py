from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from timevault.domain.entities.watch_listing import WatchListing
from timevault.domain.enums.listing_status import ListingStatus


@dataclass(frozen=True)
class ListingFilters:
    status: ListingStatus | None = ListingStatus.ACTIVE
    brand: str | None = None
    condition: str | None = None
    seller_id: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None


class ListingRepository(ABC):
    """Port for persisting and querying WatchListing aggregates."""

    @abstractmethod
    async def add(self, listing: WatchListing) -> None:
        """Raises DuplicateSerialNumberError if an active or pending listing holds the serial."""
        ...

    @abstractmethod
    async def get_by_id(self, listing_id: str) -> WatchListing | None:
        ...

    @abstractmethod
    async def save(self, listing: WatchListing) -> None:
        """
        Persist the editable fields of an existing listing. Status is
        written only by compare_and_set_status.

        Raises DuplicateSerialNumberError if a new serial is already held.
        """
        ...

    @abstractmethod
    async def compare_and_set_status(
        self,
        listing_id: str,
        expected: ListingStatus,
        new_status: ListingStatus,
    ) -> bool:
        """Move the listing to new_status only if it is still in expected."""
        ...

    @abstractmethod
    async def find_by_serial(self, serial_number: str) -> list[WatchListing]:
        ...

    @abstractmethod
    async def list_all(
        self,
        filters: ListingFilters,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WatchListing]:
        """Return matching listings, newest first."""
        ...
