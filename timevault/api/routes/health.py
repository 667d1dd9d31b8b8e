from fastapi import APIRouter, Depends

from timevault.api.dependencies import get_store
from timevault.application.interfaces.document_store import DocumentStore
from timevault.config import settings
from timevault.domain.errors import StoreUnavailableError

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(store: DocumentStore = Depends(get_store)) -> dict:  # type: ignore[type-arg]
    """Liveness + document store check."""
    store_status = "connected"
    try:
        await store.ping()
    except StoreUnavailableError as exc:
        store_status = f"error: {exc.message}"

    return {
        "status": "healthy" if store_status == "connected" else "degraded",
        "mode": "demo" if settings.demo_mode else "database",
        "store": store_status,
    }
