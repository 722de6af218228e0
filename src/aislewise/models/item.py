"""Catalog item model for Aislewise."""
from typing import Optional
from datetime import datetime
from sqlalchemy import String, ForeignKey, Integer, Boolean, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, IdMixin, TimestampMixin, SoftDeleteMixin, TZDateTime


class StoreItem(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    """A reusable item definition scoped to a store."""

    __tablename__ = "store_item"

    # One live item per normalized name and store
    __table_args__ = (
        Index(
            'ux_store_item_store_norm',
            'store_id',
            'name_norm',
            unique=True,
            sqlite_where=text("deleted_at IS NULL")
        ),
    )

    store_id: Mapped[str] = mapped_column(
        ForeignKey("store.id", ondelete="CASCADE"),
        nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_norm: Mapped[str] = mapped_column(String(200), nullable=False)
    aisle_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("store_aisle.id", ondelete="SET NULL")
    )
    section_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("store_section.id", ondelete="SET NULL")
    )
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(TZDateTime)
    is_hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<StoreItem(id='{self.id}', name='{self.name}', name_norm='{self.name_norm}')>"
