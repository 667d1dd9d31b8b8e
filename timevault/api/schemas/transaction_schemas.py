from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from timevault.api.schemas.listing_schemas import ListingResponse
from timevault.domain.enums.listing_status import ListingStatus
from timevault.domain.enums.transaction_status import TransactionStatus


class CreateTransactionRequest(BaseModel):
    watch_id: str
    shipping_info: dict[str, Any] | None = None
    tracking_id: str | None = None


class UpdateStatusRequest(BaseModel):
    # Kept as a plain string so unknown values reach the InvalidStatus check
    status: str


class TransactionResponse(BaseModel):
    id: str
    buyer_id: str
    seller_id: str
    watch_id: str
    price: Decimal
    status: TransactionStatus
    tracking_id: str | None = None
    shipping_info: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserTransactionResponse(TransactionResponse):
    type: str


class TransactionListResponse(BaseModel):
    transactions: list[UserTransactionResponse]


class TransactionDetailResponse(TransactionResponse):
    watch: ListingResponse | None = None
    buyer: dict[str, Any] | None = None
    seller: dict[str, Any] | None = None


class TransactionEnvelope(BaseModel):
    message: str
    transaction: TransactionResponse


class StatusUpdateResponse(BaseModel):
    message: str
    transaction: TransactionResponse
    listing_status: ListingStatus | None = None
    warnings: list[str] = []
