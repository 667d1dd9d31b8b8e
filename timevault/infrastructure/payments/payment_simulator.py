import asyncio
import random

import structlog

from timevault.application.interfaces.payment_processor import PaymentProcessor

logger = structlog.get_logger(__name__)


class PaymentSimulator(PaymentProcessor):
    """
    Stand-in for a payment gateway: waits ``delay_ms`` and then succeeds
    with probability ``success_rate``.

    Pass a seeded ``random.Random`` to make outcomes reproducible.
    """

    def __init__(
        self,
        delay_ms: int = 2000,
        success_rate: float = 0.95,
        rng: random.Random | None = None,
    ) -> None:
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        self._delay_seconds = max(delay_ms, 0) / 1000
        self._success_rate = success_rate
        self._rng = rng or random.Random()

    async def delay(self) -> None:
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)

    def succeeds(self) -> bool:
        outcome = self._rng.random() < self._success_rate
        logger.debug("payment_simulated", success=outcome)
        return outcome
