from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import uuid4

from timevault.domain.entities.watch_listing import WatchListing
from timevault.domain.enums.transaction_status import TransactionStatus
from timevault.domain.state_machine.transaction_state_machine import TransactionStateMachine

_state_machine = TransactionStateMachine()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Transaction:
    """
    A purchase of one listing by one buyer.

    ``price`` is locked at creation; later edits to the listing price do not
    reach an existing transaction.
    """

    id: str = field(default_factory=lambda: uuid4().hex)
    buyer_id: str = ""
    seller_id: str = ""
    watch_id: str = ""
    price: Decimal = Decimal("0")

    status: TransactionStatus = TransactionStatus.PENDING

    tracking_id: str | None = None
    shipping_info: dict[str, Any] | None = None

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None

    @classmethod
    def open_for(
        cls,
        listing: WatchListing,
        *,
        buyer_id: str,
        shipping_info: dict[str, Any] | None = None,
        tracking_id: str | None = None,
    ) -> "Transaction":
        now = _utcnow()
        return cls(
            buyer_id=buyer_id,
            seller_id=listing.seller_id,
            watch_id=listing.id,
            price=listing.price,
            status=TransactionStatus.PENDING,
            tracking_id=tracking_id,
            shipping_info=shipping_info,
            created_at=now,
            updated_at=now,
        )

    def transition_to(self, new_status: TransactionStatus) -> None:
        """Validate and apply a status transition, stamping completion time."""
        _state_machine.validate_transition(self.status, new_status)
        now = _utcnow()
        self.status = new_status
        self.updated_at = now
        if new_status is TransactionStatus.COMPLETED:
            self.completed_at = now
