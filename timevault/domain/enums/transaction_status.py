from enum import Enum


class TransactionStatus(str, Enum):
    """All possible states of a purchase transaction."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        """Terminal states cannot be transitioned out of."""
        return self is not TransactionStatus.PENDING
