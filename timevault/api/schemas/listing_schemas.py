from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from timevault.domain.enums.listing_status import ListingStatus


class CreateListingRequest(BaseModel):
    title: str
    brand: str
    price: Decimal = Field(ge=0)
    serial_number: str
    condition: str
    description: str | None = None


class UpdateListingRequest(BaseModel):
    title: str | None = None
    brand: str | None = None
    price: Decimal | None = Field(default=None, ge=0)
    serial_number: str | None = None
    condition: str | None = None
    description: str | None = None


class ListingResponse(BaseModel):
    id: str
    seller_id: str
    title: str
    brand: str
    price: Decimal
    serial_number: str
    condition: str
    description: str | None = None
    status: ListingStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ListingDetailResponse(ListingResponse):
    seller: dict[str, Any] | None = None


class ListingListResponse(BaseModel):
    watches: list[ListingResponse]
    limit: int
    offset: int


class ListingEnvelope(BaseModel):
    message: str
    watch: ListingResponse


class ValidateSerialRequest(BaseModel):
    brand: str | None = None
    serial_number: str | None = None


class ValidateSerialResponse(BaseModel):
    valid: bool
    message: str


class BrandsResponse(BaseModel):
    brands: list[str]
