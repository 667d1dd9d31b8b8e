from enum import Enum


class ListingStatus(str, Enum):
    """All possible states of a watch listing."""

    ACTIVE = "active"
    PENDING = "pending"
    SOLD = "sold"
    REMOVED = "removed"

    @property
    def holds_serial(self) -> bool:
        """Listings in these states reserve their serial number."""
        return self in (ListingStatus.ACTIVE, ListingStatus.PENDING)
