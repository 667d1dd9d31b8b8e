from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone

from timevault.application.interfaces.document_store import DocumentStore, Predicate
from timevault.application.interfaces.serial_audit_log import SerialAuditLog
from timevault.infrastructure.repositories import collections
from timevault.infrastructure.repositories.codec import dump_datetime

StoreScope = Callable[[], AbstractAsyncContextManager[DocumentStore]]


class DocumentSerialAuditLog(SerialAuditLog):
    """
    Records each validated serial number once in ``serial_validation``.

    Takes a store *scope* rather than a store because it runs after the
    request has moved on and needs a unit of work of its own.
    """

    def __init__(self, store_scope: StoreScope) -> None:
        self._store_scope = store_scope

    async def record(self, serial_number: str, brand: str, model: str) -> None:
        async with self._store_scope() as store:
            existing = await store.query(
                collections.SERIAL_VALIDATION,
                [Predicate("serial_number", "==", serial_number)],
                limit=1,
            )
            if existing:
                return
            await store.create(
                collections.SERIAL_VALIDATION,
                {
                    "serial_number": serial_number,
                    "brand": brand or "Unknown",
                    "model": model or "Unknown",
                    "created_at": dump_datetime(datetime.now(timezone.utc)),
                },
            )
