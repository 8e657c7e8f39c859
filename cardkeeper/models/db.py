"""
SQLAlchemy ORM models for persistent storage.

Cards are one row each. Decks and binders share one table and are stored as
documents: the allocation ledger, legacy wishlist and stats live in JSON
columns and are always written whole.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CardDB(Base):
    """
    A card kind in a user's collection.

    Wishlist cards live here too (status="wishlist").
    """

    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    scryfall_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    edition: Mapped[str] = mapped_column(String(255), default="")
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    condition: Mapped[str] = mapped_column(String(4), default="NM")
    foil: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(20), default="collection", index=True)
    price: Mapped[float] = mapped_column(Float, default=0.0)
    image: Mapped[str] = mapped_column(Text, default="")
    language: Mapped[str] = mapped_column(String(8), default="en")

    # Display metadata, optional until enriched
    mana_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    type_line: Mapped[str | None] = mapped_column(String(255), nullable=True)
    colors: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<CardDB(name={self.name}, qty={self.quantity}, status={self.status})>"


class ContainerDB(Base):
    """
    A deck or binder, discriminated by ``kind``.

    Deck-only columns (format, colors, commander, wishlist) stay empty for
    binders; ``for_sale`` is only meaningful for binders.
    """

    __tablename__ = "containers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    kind: Mapped[str] = mapped_column(String(20), index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    thumbnail: Mapped[str] = mapped_column(Text, default="")
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    for_sale: Mapped[bool] = mapped_column(Boolean, default=False)

    format: Mapped[str | None] = mapped_column(String(50), nullable=True)
    colors: Mapped[list[str]] = mapped_column(JSON, default=list)
    commander: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Ledger documents
    allocations: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    wishlist: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    stats: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<ContainerDB(kind={self.kind}, name={self.name})>"
