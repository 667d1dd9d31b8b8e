from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from timevault.domain.enums.listing_status import ListingStatus
from timevault.domain.state_machine.listing_state_machine import ListingStateMachine

_state_machine = ListingStateMachine()

# Fields a seller may edit after creation
EDITABLE_FIELDS: frozenset[str] = frozenset(
    {"title", "brand", "price", "serial_number", "condition", "description"}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WatchListing:
    """
    A watch offered for sale by a single seller.

    Listings are never deleted; removal is a soft transition to REMOVED.
    """

    # Identity
    id: str = field(default_factory=lambda: uuid4().hex)
    seller_id: str = ""

    # Watch details
    title: str = ""
    brand: str = ""
    price: Decimal = Decimal("0")
    serial_number: str = ""
    condition: str = ""
    description: str | None = None

    # State
    status: ListingStatus = ListingStatus.ACTIVE

    # Timestamps
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        *,
        seller_id: str,
        title: str,
        brand: str,
        price: Decimal,
        serial_number: str,
        condition: str,
        description: str | None = None,
    ) -> "WatchListing":
        now = _utcnow()
        return cls(
            seller_id=seller_id,
            title=title,
            brand=brand,
            price=price,
            serial_number=serial_number,
            condition=condition,
            description=description,
            status=ListingStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )

    def transition_to(self, new_status: ListingStatus) -> None:
        """Validate and apply a status transition."""
        _state_machine.validate_transition(self.status, new_status)
        self.status = new_status
        self.updated_at = _utcnow()

    def apply_changes(self, changes: dict[str, object]) -> dict[str, object]:
        """Apply a partial edit and return the fields that were written."""
        applied = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        for name, value in applied.items():
            setattr(self, name, value)
        self.updated_at = _utcnow()
        return applied
