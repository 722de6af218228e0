"""Quantity unit lookups."""
from typing import Iterable, List, Optional

from sqlalchemy import select

from aislewise.domain.normalize import normalize_item_name
from aislewise.models import QuantityUnit
from .base_service import BaseService


def match_unit(value: Optional[str], units: Iterable[QuantityUnit]) -> Optional[QuantityUnit]:
    """
    Find the unit a free-form unit string refers to.

    The id, abbreviation and name are compared case-insensitively, and
    plurals match their singular ("Pounds", "lbs").

    Args:
        value: Unit as written, e.g. ``"lb"`` or ``"Liters"``
        units: Candidate units

    Returns:
        The matching unit, or None
    """
    key = normalize_item_name(value or "")
    if not key:
        return None
    for unit in units:
        candidates = (unit.id, unit.abbreviation, unit.name)
        if any(normalize_item_name(c) == key for c in candidates):
            return unit
    return None


class UnitService(BaseService):
    """Read access to the seeded quantity units."""

    def list_units(self) -> List[QuantityUnit]:
        with self._read() as session:
            return list(session.scalars(
                select(QuantityUnit).order_by(QuantityUnit.sort_order, QuantityUnit.id)
            ))

    def resolve_unit(self, value: Optional[str]) -> Optional[QuantityUnit]:
        """Map a parsed unit string to a known unit, None when unknown."""
        return match_unit(value, self.list_units())
