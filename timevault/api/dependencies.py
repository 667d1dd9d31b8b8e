"""
FastAPI dependency injection wiring.

Every route gets its managers from here. The store behind them is chosen
by ``settings.demo_mode``: one process-wide in-memory store in demo mode,
otherwise a SQLAlchemy store bound to the request's session.
"""
from collections.abc import AsyncGenerator
from contextlib import AbstractAsyncContextManager, nullcontext

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from timevault.application.interfaces.document_store import DocumentStore
from timevault.application.interfaces.identity_provider import IdentityProvider
from timevault.application.interfaces.listing_repository import ListingRepository
from timevault.application.interfaces.payment_processor import PaymentProcessor
from timevault.application.interfaces.serial_audit_log import SerialAuditLog
from timevault.application.interfaces.transaction_repository import TransactionRepository
from timevault.application.interfaces.user_repository import UserRepository
from timevault.application.use_cases.listing_manager import ListingManager
from timevault.application.use_cases.transaction_manager import TransactionManager
from timevault.application.use_cases.user_profiles import UserProfiles
from timevault.config import settings
from timevault.domain.entities.caller import Caller
from timevault.domain.enums.user_role import UserRole
from timevault.domain.errors import AuthenticationError
from timevault.infrastructure.auth.demo_identity import DemoIdentityProvider
from timevault.infrastructure.auth.jwt_identity import JwtIdentityProvider
from timevault.infrastructure.database.connection import get_db_session
from timevault.infrastructure.database.document_store import (
    SqlAlchemyDocumentStore,
    standalone_store,
)
from timevault.infrastructure.memory.document_store import InMemoryDocumentStore
from timevault.infrastructure.payments.payment_simulator import PaymentSimulator
from timevault.infrastructure.repositories.listing_repository import DocumentListingRepository
from timevault.infrastructure.repositories.serial_audit_log import (
    DocumentSerialAuditLog,
    StoreScope,
)
from timevault.infrastructure.repositories.transaction_repository import (
    DocumentTransactionRepository,
)
from timevault.infrastructure.repositories.user_repository import DocumentUserRepository

_memory_store: InMemoryDocumentStore | None = None

bearer_scheme = HTTPBearer(auto_error=False)


def get_memory_store() -> InMemoryDocumentStore:
    global _memory_store
    if _memory_store is None:
        _memory_store = InMemoryDocumentStore()
    return _memory_store


def demo_caller() -> Caller:
    try:
        role = UserRole(settings.demo_user_role)
    except ValueError:
        role = UserRole.USER
    return Caller(id=settings.demo_user_id, email=settings.demo_user_email, role=role)


# ---- Store -----------------------------------------------------------------

async def get_store() -> AsyncGenerator[DocumentStore, None]:
    if settings.demo_mode:
        yield get_memory_store()
        return
    async for session in get_db_session():
        yield SqlAlchemyDocumentStore(session)


def get_store_scope() -> StoreScope:
    """Factory for stores used outside the request's unit of work."""
    if settings.demo_mode:
        store = get_memory_store()

        def memory_scope() -> AbstractAsyncContextManager[DocumentStore]:
            return nullcontext(store)

        return memory_scope
    return standalone_store


def get_listing_repo(store: DocumentStore = Depends(get_store)) -> ListingRepository:
    return DocumentListingRepository(store)


def get_transaction_repo(store: DocumentStore = Depends(get_store)) -> TransactionRepository:
    return DocumentTransactionRepository(store)


def get_user_repo(store: DocumentStore = Depends(get_store)) -> UserRepository:
    return DocumentUserRepository(store)


def get_serial_audit_log(scope: StoreScope = Depends(get_store_scope)) -> SerialAuditLog:
    return DocumentSerialAuditLog(scope)


def get_payment_processor() -> PaymentProcessor | None:
    if not settings.payment_simulation_enabled:
        return None
    return PaymentSimulator(
        delay_ms=settings.payment_delay_ms,
        success_rate=settings.payment_success_rate,
    )


# ---- Identity --------------------------------------------------------------

def get_identity_provider() -> IdentityProvider:
    if settings.demo_mode:
        return DemoIdentityProvider(demo_caller())
    return JwtIdentityProvider(settings.jwt_secret, settings.jwt_algorithm)


async def get_current_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Caller:
    return await identity.verify(credentials.credentials if credentials else None)


async def get_optional_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Caller | None:
    """Like get_current_caller, but anonymous requests yield None instead of 401."""
    try:
        return await identity.verify(credentials.credentials if credentials else None)
    except AuthenticationError:
        if credentials is None:
            return None
        raise


# ---- Use cases -------------------------------------------------------------

def get_listing_manager(
    listing_repo: ListingRepository = Depends(get_listing_repo),
    serial_audit_log: SerialAuditLog = Depends(get_serial_audit_log),
) -> ListingManager:
    return ListingManager(listing_repo, serial_audit_log)


def get_transaction_manager(
    listing_repo: ListingRepository = Depends(get_listing_repo),
    transaction_repo: TransactionRepository = Depends(get_transaction_repo),
    user_repo: UserRepository = Depends(get_user_repo),
    payment: PaymentProcessor | None = Depends(get_payment_processor),
) -> TransactionManager:
    return TransactionManager(listing_repo, transaction_repo, user_repo, payment)


def get_user_profiles(user_repo: UserRepository = Depends(get_user_repo)) -> UserProfiles:
    return UserProfiles(user_repo)
