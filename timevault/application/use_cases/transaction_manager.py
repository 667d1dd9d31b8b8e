from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import structlog

from timevault.application.interfaces.listing_repository import ListingRepository
from timevault.application.interfaces.payment_processor import PaymentProcessor
from timevault.application.interfaces.transaction_repository import TransactionRepository
from timevault.application.interfaces.user_repository import UserRepository
from timevault.domain.entities.caller import Caller
from timevault.domain.entities.transaction import Transaction
from timevault.domain.entities.watch_listing import WatchListing
from timevault.domain.enums.listing_status import ListingStatus
from timevault.domain.enums.transaction_status import TransactionStatus
from timevault.domain.errors import (
    ForbiddenError,
    InvalidStateTransitionError,
    InvalidStatusError,
    ListingNotAvailableError,
    NotFoundError,
    PaymentFailedError,
    SelfPurchaseError,
    StoreUnavailableError,
    ValidationError,
)
from timevault.domain.state_machine.transaction_state_machine import TransactionStateMachine

logger = structlog.get_logger(__name__)


class TransactionView(str, Enum):
    ALL = "all"
    PURCHASES = "purchases"
    SALES = "sales"


@dataclass
class CreateTransactionInput:
    watch_id: str
    shipping_info: dict[str, Any] | None = None
    tracking_id: str | None = None


@dataclass
class UserTransaction:
    """A transaction tagged with the caller's side of it."""

    transaction: Transaction
    type: str  # "purchase" | "sale"


@dataclass
class TransactionDetails:
    transaction: Transaction
    watch: WatchListing | None
    buyer: dict[str, Any] | None
    seller: dict[str, Any] | None


@dataclass
class StatusUpdateResult:
    transaction: Transaction
    from_status: TransactionStatus
    listing_status: ListingStatus | None = None
    warnings: list[str] = field(default_factory=list)


class TransactionManager:
    """
    Owns the purchase workflow and keeps the listing's status in lockstep
    with its transaction.

    The payment step is optional: pass ``payment=None`` to skip it.
    """

    def __init__(
        self,
        listing_repo: ListingRepository,
        transaction_repo: TransactionRepository,
        user_repo: UserRepository,
        payment: PaymentProcessor | None = None,
    ) -> None:
        self._listing_repo = listing_repo
        self._transaction_repo = transaction_repo
        self._user_repo = user_repo
        self._payment = payment
        self._state_machine = TransactionStateMachine()

    async def create_transaction(
        self, buyer: Caller, input_data: CreateTransactionInput
    ) -> Transaction:
        if not input_data.watch_id:
            raise ValidationError("Watch ID is required")

        listing = await self._get_available_listing(buyer, input_data.watch_id)

        if self._payment is not None:
            # No lock is held while waiting; availability is re-checked below
            await self._payment.delay()
            if not self._payment.succeeds():
                logger.info("payment_failed", watch_id=listing.id, buyer_id=buyer.id)
                raise PaymentFailedError()

        claimed = await self._listing_repo.compare_and_set_status(
            listing.id, expected=ListingStatus.ACTIVE, new_status=ListingStatus.PENDING
        )
        if not claimed:
            logger.info("listing_claim_lost", watch_id=listing.id, buyer_id=buyer.id)
            raise ListingNotAvailableError(listing.id)

        try:
            # Price and seller are snapshotted from the listing as claimed, not as first read
            listing = await self._listing_repo.get_by_id(listing.id) or listing
            transaction = Transaction.open_for(
                listing,
                buyer_id=buyer.id,
                shipping_info=input_data.shipping_info,
                tracking_id=input_data.tracking_id,
            )
            await self._transaction_repo.add(transaction)
        except StoreUnavailableError:
            await self._release_listing(listing.id)
            raise

        logger.info(
            "transaction_created",
            transaction_id=transaction.id,
            watch_id=listing.id,
            buyer_id=buyer.id,
            seller_id=listing.seller_id,
            price=str(transaction.price),
        )
        return transaction

    async def get_user_transactions(
        self, user: Caller, view: str | TransactionView = TransactionView.ALL
    ) -> list[UserTransaction]:
        try:
            view = TransactionView(view)
        except ValueError:
            raise ValidationError(
                f"Type must be one of: {', '.join(v.value for v in TransactionView)}"
            ) from None

        results: list[UserTransaction] = []
        if view in (TransactionView.ALL, TransactionView.PURCHASES):
            results.extend(
                UserTransaction(t, "purchase")
                for t in await self._transaction_repo.list_for_buyer(user.id)
            )
        if view in (TransactionView.ALL, TransactionView.SALES):
            results.extend(
                UserTransaction(t, "sale")
                for t in await self._transaction_repo.list_for_seller(user.id)
            )

        results.sort(key=lambda r: r.transaction.created_at, reverse=True)
        return results

    async def get_transaction_by_id(self, user: Caller, transaction_id: str) -> TransactionDetails:
        transaction = await self._get_transaction(transaction_id)

        if user.id not in (transaction.buyer_id, transaction.seller_id):
            raise ForbiddenError("You do not have access to this transaction")

        watch = await self._listing_repo.get_by_id(transaction.watch_id)
        buyer = await self._user_repo.get_by_id(transaction.buyer_id)
        seller = await self._user_repo.get_by_id(transaction.seller_id)

        return TransactionDetails(
            transaction=transaction,
            watch=watch,
            buyer=buyer.public_contact() if buyer else None,
            seller=seller.public_contact() if seller else None,
        )

    async def update_transaction_status(
        self, caller: Caller, transaction_id: str, new_status: str | TransactionStatus
    ) -> StatusUpdateResult:
        try:
            status = TransactionStatus(new_status)
        except ValueError:
            raise InvalidStatusError(str(new_status), [s.value for s in TransactionStatus]) from None

        transaction = await self._get_transaction(transaction_id)

        if caller.id != transaction.seller_id:
            raise ForbiddenError("Only the seller can update transaction status")

        from_status = transaction.status
        previous = replace(transaction)
        # Raises InvalidStateTransitionError once the transaction is terminal
        transaction.transition_to(status)

        claimed = await self._transaction_repo.compare_and_set_status(
            transaction, expected=from_status
        )
        if not claimed:
            current = await self._get_transaction(transaction_id)
            logger.info(
                "transaction_claim_lost",
                transaction_id=transaction.id,
                wanted=status.value,
                current=current.status.value,
            )
            raise InvalidStateTransitionError(
                "transaction",
                current.status.value,
                status.value,
                sorted(s.value for s in self._state_machine.get_allowed_transitions(current.status)),
            )

        result = StatusUpdateResult(transaction=transaction, from_status=from_status)

        listing_status = self._state_machine.listing_status_after(status)
        if listing_status is not None:
            try:
                synced = await self._listing_repo.compare_and_set_status(
                    transaction.watch_id, expected=ListingStatus.PENDING, new_status=listing_status
                )
            except StoreUnavailableError:
                await self._restore_transaction(previous, applied=status)
                raise
            if synced:
                result.listing_status = listing_status
            else:
                logger.warning(
                    "listing_status_out_of_sync",
                    transaction_id=transaction.id,
                    watch_id=transaction.watch_id,
                    wanted=listing_status.value,
                )
                result.warnings.append(
                    f"Listing {transaction.watch_id} was not pending; its status was left unchanged"
                )

        logger.info(
            "transaction_status_updated",
            transaction_id=transaction.id,
            from_status=from_status.value,
            to_status=status.value,
            listing_status=result.listing_status.value if result.listing_status else None,
        )
        return result

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _get_available_listing(self, buyer: Caller, watch_id: str) -> WatchListing:
        listing = await self._listing_repo.get_by_id(watch_id)
        if listing is None:
            raise NotFoundError("watch", watch_id)
        if listing.status is not ListingStatus.ACTIVE:
            raise ListingNotAvailableError(listing.id)
        if listing.seller_id == buyer.id:
            raise SelfPurchaseError()
        return listing

    async def _get_transaction(self, transaction_id: str) -> Transaction:
        transaction = await self._transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError("transaction", transaction_id)
        return transaction

    async def _release_listing(self, listing_id: str) -> None:
        await self._restore_listing(listing_id, ListingStatus.PENDING, ListingStatus.ACTIVE)

    async def _restore_listing(
        self, listing_id: str, current: ListingStatus, previous: ListingStatus
    ) -> None:
        """Undo a listing status write whose paired transaction write failed."""
        try:
            await self._listing_repo.compare_and_set_status(
                listing_id, expected=current, new_status=previous
            )
            logger.warning(
                "listing_status_restored",
                watch_id=listing_id,
                from_status=current.value,
                to_status=previous.value,
            )
        except StoreUnavailableError:
            logger.exception("failed_to_restore_listing_status", watch_id=listing_id)

    async def _restore_transaction(self, previous: Transaction, applied: TransactionStatus) -> None:
        """Undo a transaction status claim whose paired listing write failed."""
        try:
            await self._transaction_repo.compare_and_set_status(previous, expected=applied)
            logger.warning(
                "transaction_status_restored",
                transaction_id=previous.id,
                from_status=applied.value,
                to_status=previous.status.value,
            )
        except StoreUnavailableError:
            logger.exception("failed_to_restore_transaction_status", transaction_id=previous.id)
