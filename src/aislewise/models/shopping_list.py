"""Shopping list models for Aislewise."""
from typing import Optional
from datetime import datetime
from sqlalchemy import String, ForeignKey, Float, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IdMixin, TimestampMixin, SoftDeleteMixin, TZDateTime


class ShoppingList(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    """A shopping list for one store."""

    __tablename__ = "shopping_list"

    store_id: Mapped[str] = mapped_column(
        ForeignKey("store.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    title: Mapped[Optional[str]] = mapped_column(String(200))
    completed_at: Mapped[Optional[datetime]] = mapped_column(TZDateTime)

    items = relationship(
        "ShoppingListItem",
        back_populates="list",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<ShoppingList(id='{self.id}', store_id='{self.store_id}')>"


class ShoppingListItem(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    """An entry on a shopping list.

    The ``*_snap`` columns freeze the aisle/section names seen when the entry
    was last saved, so reorganizing the catalog does not rewrite lists.
    """

    __tablename__ = "shopping_list_item"

    list_id: Mapped[str] = mapped_column(
        ForeignKey("shopping_list.id", ondelete="CASCADE"),
        nullable=False
    )
    store_id: Mapped[str] = mapped_column(
        ForeignKey("store.id", ondelete="CASCADE"),
        nullable=False
    )
    store_item_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("store_item.id", ondelete="SET NULL")
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_norm: Mapped[str] = mapped_column(String(200), nullable=False)
    qty: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    # Location snapshot
    aisle_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("store_aisle.id", ondelete="SET NULL")
    )
    aisle_name_snap: Mapped[Optional[str]] = mapped_column(String(200))
    section_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("store_section.id", ondelete="SET NULL")
    )
    section_name_snap: Mapped[Optional[str]] = mapped_column(String(200))

    unit_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("quantity_unit.id", ondelete="SET NULL")
    )

    is_checked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    checked_at: Mapped[Optional[datetime]] = mapped_column(TZDateTime)

    list = relationship("ShoppingList", back_populates="items")

    def __repr__(self) -> str:
        return f"<ShoppingListItem(id='{self.id}', name='{self.name}', qty={self.qty})>"
