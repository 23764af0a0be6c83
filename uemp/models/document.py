"""Document ORM — one row per path-addressed JSON document.

Invariants:
    - path is the primary key ("manufacturers/m1/models/p1")
    - collection is the parent collection path, indexed for list_documents()
    - version starts at 1 and increments on every committed write (optimistic concurrency)

Design Decisions:
    - JSON column for data: documents are schemaless maps, typed in core/documents.py
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from uemp.db.base import Base


class Document(Base):
    """A stored document and its concurrency version."""
    __tablename__ = "documents"

    path: Mapped[str] = mapped_column(String(1024), primary_key=True)
    collection: Mapped[str] = mapped_column(
        String(1024), nullable=False, index=True,
    )
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
