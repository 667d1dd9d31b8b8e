from abc import ABC, abstractmethod


class PaymentProcessor(ABC):
    """Port for the (simulated) payment step of a purchase."""

    @abstractmethod
    async def delay(self) -> None:
        ...

    @abstractmethod
    def succeeds(self) -> bool:
        ...
