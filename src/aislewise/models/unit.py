"""Quantity unit reference table."""
from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class QuantityUnit(Base):
    """A unit a list quantity can be expressed in; seeded by migrations."""

    __tablename__ = "quantity_unit"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    abbreviation: Mapped[str] = mapped_column(String(20), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<QuantityUnit(id='{self.id}', abbreviation='{self.abbreviation}')>"
