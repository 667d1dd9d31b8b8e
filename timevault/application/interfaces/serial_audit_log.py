from abc import ABC, abstractmethod


class SerialAuditLog(ABC):
    """Port for recording serial numbers that passed validation."""

    @abstractmethod
    async def record(self, serial_number: str, brand: str, model: str) -> None:
        ...
