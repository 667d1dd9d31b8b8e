from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status

from timevault.api.dependencies import (
    get_current_caller,
    get_listing_manager,
    get_user_repo,
)
from timevault.api.schemas.listing_schemas import (
    BrandsResponse,
    CreateListingRequest,
    ListingDetailResponse,
    ListingEnvelope,
    ListingListResponse,
    ListingResponse,
    UpdateListingRequest,
    ValidateSerialRequest,
    ValidateSerialResponse,
)
from timevault.application.interfaces.listing_repository import ListingFilters
from timevault.application.interfaces.user_repository import UserRepository
from timevault.application.use_cases.listing_manager import (
    CreateListingInput,
    ListingManager,
    UpdateListingInput,
)
from timevault.domain.entities.caller import Caller
from timevault.domain.enums.listing_status import ListingStatus
from timevault.domain.serials.serial_rules import get_supported_brands, validate_serial_number

router = APIRouter(prefix="/api/watches", tags=["watches"])


@router.get("", response_model=ListingListResponse)
async def list_watches(
    status_filter: ListingStatus = Query(default=ListingStatus.ACTIVE, alias="status"),
    brand: str | None = Query(default=None),
    condition: str | None = Query(default=None),
    min_price: Decimal | None = Query(default=None, ge=0),
    max_price: Decimal | None = Query(default=None, ge=0),
    limit: int = Query(default=50, ge=1),
    offset: int = Query(default=0, ge=0),
    manager: ListingManager = Depends(get_listing_manager),
) -> ListingListResponse:
    """Browse listings, newest first. Page size is capped at 200."""
    filters = ListingFilters(
        status=status_filter,
        brand=brand,
        condition=condition,
        min_price=min_price,
        max_price=max_price,
    )
    listings = await manager.list_listings(filters, limit=limit, offset=offset)
    return ListingListResponse(
        watches=[ListingResponse.model_validate(l) for l in listings],
        limit=min(limit, 200),
        offset=offset,
    )


@router.get("/featured", response_model=list[ListingResponse])
async def featured_watches(
    manager: ListingManager = Depends(get_listing_manager),
) -> list[ListingResponse]:
    return [ListingResponse.model_validate(l) for l in await manager.featured_listings()]


@router.get("/brands", response_model=BrandsResponse)
async def supported_brands() -> BrandsResponse:
    return BrandsResponse(brands=get_supported_brands())


@router.post("/validate-serial", response_model=ValidateSerialResponse)
async def validate_serial(body: ValidateSerialRequest) -> ValidateSerialResponse:
    """Check a serial number's format for a brand without creating anything."""
    result = validate_serial_number(body.brand, body.serial_number)
    return ValidateSerialResponse(valid=result.valid, message=result.message)


@router.get("/seller/{seller_id}", response_model=list[ListingResponse])
async def watches_by_seller(
    seller_id: str,
    limit: int = Query(default=50, ge=1),
    offset: int = Query(default=0, ge=0),
    manager: ListingManager = Depends(get_listing_manager),
) -> list[ListingResponse]:
    listings = await manager.list_by_seller(seller_id, limit=limit, offset=offset)
    return [ListingResponse.model_validate(l) for l in listings]


@router.get("/{watch_id}", response_model=ListingDetailResponse)
async def get_watch(
    watch_id: str,
    manager: ListingManager = Depends(get_listing_manager),
    user_repo: UserRepository = Depends(get_user_repo),
) -> ListingDetailResponse:
    listing = await manager.get_listing(watch_id)
    seller = await user_repo.get_by_id(listing.seller_id)

    response = ListingDetailResponse.model_validate(listing)
    response.seller = seller.public_seller() if seller else None
    return response


@router.post("", response_model=ListingEnvelope, status_code=status.HTTP_201_CREATED)
async def create_watch(
    body: CreateListingRequest,
    caller: Caller = Depends(get_current_caller),
    manager: ListingManager = Depends(get_listing_manager),
) -> ListingEnvelope:
    listing = await manager.create_listing(caller, CreateListingInput(**body.model_dump()))
    return ListingEnvelope(
        message="Watch listing created successfully",
        watch=ListingResponse.model_validate(listing),
    )


@router.put("/{watch_id}", response_model=ListingEnvelope)
async def update_watch(
    watch_id: str,
    body: UpdateListingRequest,
    caller: Caller = Depends(get_current_caller),
    manager: ListingManager = Depends(get_listing_manager),
) -> ListingEnvelope:
    sent = body.model_dump(exclude_unset=True)
    listing = await manager.update_listing(
        caller, watch_id, UpdateListingInput(**sent, provided_fields=frozenset(sent))
    )
    return ListingEnvelope(
        message="Watch listing updated successfully",
        watch=ListingResponse.model_validate(listing),
    )


@router.delete("/{watch_id}", response_model=ListingEnvelope)
async def delete_watch(
    watch_id: str,
    caller: Caller = Depends(get_current_caller),
    manager: ListingManager = Depends(get_listing_manager),
) -> ListingEnvelope:
    """Soft delete: the listing is kept with status ``removed``."""
    listing = await manager.remove_listing(caller, watch_id)
    return ListingEnvelope(
        message="Watch listing removed successfully",
        watch=ListingResponse.model_validate(listing),
    )
