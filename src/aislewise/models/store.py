"""Store layout models: stores, aisles and sections."""
from sqlalchemy import String, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IdMixin, TimestampMixin, SoftDeleteMixin


class Store(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    """A physical store; root of a layout."""

    __tablename__ = "store"

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    aisles = relationship(
        "StoreAisle",
        back_populates="store",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Store(id='{self.id}', name='{self.name}')>"


class StoreAisle(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    """An aisle inside a store."""

    __tablename__ = "store_aisle"

    store_id: Mapped[str] = mapped_column(
        ForeignKey("store.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    store = relationship("Store", back_populates="aisles")
    sections = relationship(
        "StoreSection",
        back_populates="aisle",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<StoreAisle(id='{self.id}', name='{self.name}', sort_order={self.sort_order})>"


class StoreSection(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    """A section inside an aisle."""

    __tablename__ = "store_section"

    store_id: Mapped[str] = mapped_column(
        ForeignKey("store.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    aisle_id: Mapped[str] = mapped_column(
        ForeignKey("store_aisle.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    aisle = relationship("StoreAisle", back_populates="sections")

    def __repr__(self) -> str:
        return f"<StoreSection(id='{self.id}', name='{self.name}', sort_order={self.sort_order})>"
