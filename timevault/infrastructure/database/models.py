"""
SQLAlchemy ORM models.

Every collection lives in one ``documents`` table keyed by
(collection, id); the document body is a JSON column. Domain entities are
mapped to and from these bodies by the repositories.
"""
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from timevault.infrastructure.database.connection import Base

# JSONB on Postgres, plain JSON elsewhere
_document_body = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentModel(Base):
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    data: Mapped[dict[str, Any]] = mapped_column(_document_body, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    __table_args__ = (Index("ix_documents_collection", "collection"),)
