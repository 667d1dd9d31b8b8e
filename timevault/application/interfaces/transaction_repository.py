from abc import ABC, abstractmethod

from timevault.domain.entities.transaction import Transaction
from timevault.domain.enums.transaction_status import TransactionStatus


class TransactionRepository(ABC):
    """Port for persisting and querying Transaction aggregates."""

    @abstractmethod
    async def add(self, transaction: Transaction) -> None:
        ...

    @abstractmethod
    async def get_by_id(self, transaction_id: str) -> Transaction | None:
        ...

    @abstractmethod
    async def compare_and_set_status(
        self, transaction: Transaction, expected: TransactionStatus
    ) -> bool:
        """
        Write the transaction's status and timestamps only if the stored
        status is still ``expected``. Returns True when the write happened.
        """
        ...

    @abstractmethod
    async def list_for_buyer(self, buyer_id: str) -> list[Transaction]:
        ...

    @abstractmethod
    async def list_for_seller(self, seller_id: str) -> list[Transaction]:
        ...
