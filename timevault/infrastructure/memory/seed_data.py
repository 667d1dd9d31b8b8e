"""
Sample users and listings loaded into the in-memory store in demo mode.

Every listing carries a serial number that passes its brand's format check.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import structlog

from timevault.application.interfaces.document_store import DocumentStore
from timevault.domain.entities.caller import Caller
from timevault.domain.entities.watch_listing import WatchListing
from timevault.infrastructure.repositories import collections
from timevault.infrastructure.repositories.codec import dump_datetime
from timevault.infrastructure.repositories.listing_repository import DocumentListingRepository

logger = structlog.get_logger(__name__)

DEMO_USERS = [
    {"id": "demo-user-1", "name": "John Smith", "email": "john@demo.com", "role": "seller", "rating": 4.8},
    {"id": "demo-user-2", "name": "Sarah Johnson", "email": "sarah@demo.com", "role": "buyer", "rating": 4.5},
    {"id": "demo-user-3", "name": "Michael Chen", "email": "michael@demo.com", "role": "seller", "rating": 4.9},
    {"id": "demo-user-4", "name": "Emma Wilson", "email": "emma@demo.com", "role": "buyer", "rating": 4.2},
]

DEMO_LISTINGS = [
    {
        "id": "watch-1",
        "seller_id": "demo-user-1",
        "title": "Rolex Submariner Date",
        "brand": "Rolex",
        "price": Decimal("12500"),
        "serial_number": "R1234567",
        "condition": "excellent",
        "description": "Black dial, ceramic bezel. Original box and papers.",
    },
    {
        "id": "watch-2",
        "seller_id": "demo-user-3",
        "title": "Omega Speedmaster Professional",
        "brand": "Omega",
        "price": Decimal("5800"),
        "serial_number": "98765432",
        "condition": "very good",
        "description": "The Moonwatch. Manual wind, hesalite crystal.",
    },
    {
        "id": "watch-3",
        "seller_id": "demo-user-1",
        "title": "Seiko Presage Cocktail Time",
        "brand": "Seiko",
        "price": Decimal("425"),
        "serial_number": "5556667",
        "condition": "new",
        "description": "Blue sunburst dial, automatic movement.",
    },
    {
        "id": "watch-4",
        "seller_id": "demo-user-3",
        "title": "Casio G-Shock GA-2100",
        "brand": "Casio",
        "price": Decimal("99"),
        "serial_number": "C111222333",
        "condition": "good",
        "description": None,
    },
    {
        "id": "watch-5",
        "seller_id": "demo-user-1",
        "title": "Rolex Datejust 41",
        "brand": "Rolex",
        "price": Decimal("9800"),
        "serial_number": "R9998887",
        "condition": "excellent",
        "description": "Fluted bezel, jubilee bracelet.",
    },
]


async def seed_demo_store(store: DocumentStore, demo_caller: Caller) -> None:
    """Load the sample data. Safe to call on a store that is already seeded."""
    now = datetime.now(timezone.utc)

    users = DEMO_USERS + [
        {
            "id": demo_caller.id,
            "name": "Demo User",
            "email": demo_caller.email or "",
            "role": demo_caller.role.value,
            "rating": 5.0,
        }
    ]
    for user in users:
        if await store.get(collections.USERS, user["id"]) is None:
            await store.create(
                collections.USERS,
                {**user, "profile_pic": None, "created_at": dump_datetime(now)},
                user["id"],
            )

    listings = DocumentListingRepository(store)
    for age, fields in enumerate(DEMO_LISTINGS):
        if await listings.get_by_id(fields["id"]) is not None:
            continue
        # Stagger creation times so the newest-first ordering is stable
        created = now - timedelta(hours=age)
        await listings.add(WatchListing(**fields, created_at=created, updated_at=created))

    logger.info("demo_data_seeded", users=len(users), listings=len(DEMO_LISTINGS))
