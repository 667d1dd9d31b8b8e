from timevault.domain.enums.listing_status import ListingStatus
from timevault.domain.enums.transaction_status import TransactionStatus
from timevault.domain.errors import InvalidStateTransitionError

VALID_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset(
        {TransactionStatus.COMPLETED, TransactionStatus.CANCELLED, TransactionStatus.REFUNDED}
    ),
    # Terminal states have no outgoing transitions
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.CANCELLED: frozenset(),
    TransactionStatus.REFUNDED: frozenset(),
}

# Listing status each transaction outcome moves the listing to (None = unchanged)
LISTING_SIDE_EFFECTS: dict[TransactionStatus, ListingStatus | None] = {
    TransactionStatus.COMPLETED: ListingStatus.SOLD,
    TransactionStatus.CANCELLED: ListingStatus.ACTIVE,
    TransactionStatus.REFUNDED: None,
}


class TransactionStateMachine:
    """
    Validates transaction status transitions and tells the caller what the
    coupled listing must do in response.
    """

    def can_transition(self, from_status: TransactionStatus, to_status: TransactionStatus) -> bool:
        if from_status.is_terminal:
            return False
        return to_status in VALID_TRANSITIONS.get(from_status, frozenset())

    def validate_transition(
        self, from_status: TransactionStatus, to_status: TransactionStatus
    ) -> None:
        if not self.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(
                "transaction",
                from_status.value,
                to_status.value,
                sorted(s.value for s in self.get_allowed_transitions(from_status)),
            )

    def get_allowed_transitions(self, from_status: TransactionStatus) -> frozenset[TransactionStatus]:
        return VALID_TRANSITIONS.get(from_status, frozenset())

    def listing_status_after(self, to_status: TransactionStatus) -> ListingStatus | None:
        """Return the listing status implied by moving a transaction to to_status."""
        return LISTING_SIDE_EFFECTS.get(to_status)
