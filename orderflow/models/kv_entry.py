"""
Key-Value Entry Model

Backing table for the SQL key-value store. Every entity kind shares this
one table and is told apart by the key prefix ("order:", "product:", ...).
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from orderflow.database import Base


class KVEntry(Base):
    """A single JSON document addressed by an opaque string key."""
    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )

    value: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<KVEntry(key={self.key})>"
