from timevault.domain.enums.listing_status import ListingStatus
from timevault.domain.errors import InvalidStateTransitionError

# Mapping of valid transitions: from_status -> set of allowed to_statuses
VALID_TRANSITIONS: dict[ListingStatus, frozenset[ListingStatus]] = {
    ListingStatus.ACTIVE: frozenset({ListingStatus.PENDING, ListingStatus.REMOVED}),
    # A pending listing is locked by an open transaction until it settles
    ListingStatus.PENDING: frozenset({ListingStatus.ACTIVE, ListingStatus.SOLD}),
    ListingStatus.SOLD: frozenset({ListingStatus.REMOVED}),
    ListingStatus.REMOVED: frozenset(),
}


class ListingStateMachine:
    """
    Validates status transitions for watch listings.

    Stateless: call can_transition() or validate_transition() with explicit states.
    """

    def can_transition(self, from_status: ListingStatus, to_status: ListingStatus) -> bool:
        return to_status in VALID_TRANSITIONS.get(from_status, frozenset())

    def validate_transition(self, from_status: ListingStatus, to_status: ListingStatus) -> None:
        """Raise InvalidStateTransitionError if the transition is not permitted."""
        if not self.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(
                "listing",
                from_status.value,
                to_status.value,
                sorted(s.value for s in self.get_allowed_transitions(from_status)),
            )

    def get_allowed_transitions(self, from_status: ListingStatus) -> frozenset[ListingStatus]:
        return VALID_TRANSITIONS.get(from_status, frozenset())
