from fastapi import APIRouter, Depends, Query, status

from timevault.api.dependencies import get_current_caller, get_transaction_manager
from timevault.api.schemas.listing_schemas import ListingResponse
from timevault.api.schemas.transaction_schemas import (
    CreateTransactionRequest,
    StatusUpdateResponse,
    TransactionDetailResponse,
    TransactionEnvelope,
    TransactionListResponse,
    TransactionResponse,
    UpdateStatusRequest,
    UserTransactionResponse,
)
from timevault.application.use_cases.transaction_manager import (
    CreateTransactionInput,
    TransactionManager,
)
from timevault.domain.entities.caller import Caller

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.post("", response_model=TransactionEnvelope, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    body: CreateTransactionRequest,
    caller: Caller = Depends(get_current_caller),
    manager: TransactionManager = Depends(get_transaction_manager),
) -> TransactionEnvelope:
    """Buy a listing. Runs the simulated payment step before claiming it."""
    transaction = await manager.create_transaction(
        caller,
        CreateTransactionInput(
            watch_id=body.watch_id,
            shipping_info=body.shipping_info,
            tracking_id=body.tracking_id,
        ),
    )
    return TransactionEnvelope(
        message="Transaction created successfully",
        transaction=TransactionResponse.model_validate(transaction),
    )


@router.get("", response_model=TransactionListResponse)
async def list_transactions(
    view: str = Query(default="all", alias="type"),
    caller: Caller = Depends(get_current_caller),
    manager: TransactionManager = Depends(get_transaction_manager),
) -> TransactionListResponse:
    results = await manager.get_user_transactions(caller, view)
    return TransactionListResponse(
        transactions=[
            UserTransactionResponse(
                **TransactionResponse.model_validate(r.transaction).model_dump(),
                type=r.type,
            )
            for r in results
        ]
    )


@router.get("/{transaction_id}", response_model=TransactionDetailResponse)
async def get_transaction(
    transaction_id: str,
    caller: Caller = Depends(get_current_caller),
    manager: TransactionManager = Depends(get_transaction_manager),
) -> TransactionDetailResponse:
    details = await manager.get_transaction_by_id(caller, transaction_id)
    return TransactionDetailResponse(
        **TransactionResponse.model_validate(details.transaction).model_dump(),
        watch=ListingResponse.model_validate(details.watch) if details.watch else None,
        buyer=details.buyer,
        seller=details.seller,
    )


@router.patch("/{transaction_id}/status", response_model=StatusUpdateResponse)
async def update_transaction_status(
    transaction_id: str,
    body: UpdateStatusRequest,
    caller: Caller = Depends(get_current_caller),
    manager: TransactionManager = Depends(get_transaction_manager),
) -> StatusUpdateResponse:
    result = await manager.update_transaction_status(caller, transaction_id, body.status)
    return StatusUpdateResponse(
        message="Transaction status updated successfully",
        transaction=TransactionResponse.model_validate(result.transaction),
        listing_status=result.listing_status,
        warnings=result.warnings,
    )
