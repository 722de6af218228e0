"""Catalog item service."""
from typing import Any, List, Optional, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session, aliased, sessionmaker

from aislewise.domain.normalize import normalize_item_name
from aislewise.domain.types import CatalogItemView
from aislewise.errors import ConstraintViolation
from aislewise.events.bus import ChangeBus
from aislewise.models import Store, StoreAisle, StoreSection, StoreItem
from .base_service import BaseService
from .layout_service import resolve_location

# Marks an argument that was not passed, since None clears a location
UNSET: Any = object()

DEFAULT_SEARCH_LIMIT = 10


def find_live_item(session: Session, store_id: str, name_norm: str) -> Optional[StoreItem]:
    """Look up the live catalog item with a normalized name."""
    return session.scalars(
        select(StoreItem).where(
            StoreItem.store_id == store_id,
            StoreItem.name_norm == name_norm,
            StoreItem.deleted_at.is_(None)
        )
    ).first()


class ItemService(BaseService):
    """Service for managing catalog items."""

    def __init__(
        self,
        session_factory: sessionmaker,
        bus: Optional[ChangeBus] = None,
        search_limit: int = DEFAULT_SEARCH_LIMIT
    ):
        super().__init__(session_factory, bus)
        self.search_limit = search_limit

    def _check_unique(
        self,
        session: Session,
        store_id: str,
        name_norm: str,
        exclude_id: Optional[str] = None
    ) -> None:
        existing = find_live_item(session, store_id, name_norm)
        if existing is not None and existing.id != exclude_id:
            raise ConstraintViolation(
                f"An item named '{existing.name}' already exists in this store",
                suggestions=["Use the existing item", "Pick a different name"],
                metadata={'existing_id': existing.id, 'name_norm': name_norm}
            )

    def insert_item(
        self,
        store_id: str,
        name: str,
        aisle_id: Optional[str] = None,
        section_id: Optional[str] = None
    ) -> StoreItem:
        """
        Add an item to a store's catalog.

        Args:
            store_id: Owning store
            name: Display name
            aisle_id: Optional aisle
            section_id: Optional section; implies its aisle

        Returns:
            The created item

        Raises:
            ConstraintViolation: If a live item with the same normalized
                name exists, or the location is invalid
        """
        name = self._validate_name(name)
        name_norm = normalize_item_name(name)
        with self._write() as session:
            self._get_live(session, Store, store_id, "Store")
            self._check_unique(session, store_id, name_norm)
            aisle, section = resolve_location(session, store_id, aisle_id, section_id)
            item = StoreItem(
                store_id=store_id,
                name=name,
                name_norm=name_norm,
                aisle_id=aisle.id if aisle else None,
                section_id=section.id if section else None
            )
            session.add(item)
            session.flush()
        self._log_action("insert_item", item_id=item.id, store_id=store_id, name=name)
        return item

    def list_items(self, store_id: str, include_hidden: bool = False) -> List[StoreItem]:
        query = (
            select(StoreItem)
            .where(StoreItem.store_id == store_id, StoreItem.deleted_at.is_(None))
            .order_by(StoreItem.name_norm, StoreItem.created_at)
        )
        if not include_hidden:
            query = query.where(StoreItem.is_hidden.is_(False))
        with self._read() as session:
            return list(session.scalars(query))

    def list_items_with_location(self, store_id: str) -> List[CatalogItemView]:
        """
        List live catalog items with the names of their aisle and section.

        Locations pointing at deleted aisles or sections come back empty.
        """
        aisle = aliased(StoreAisle)
        section = aliased(StoreSection)
        query = (
            select(StoreItem, aisle, section)
            .outerjoin(aisle, and_(aisle.id == StoreItem.aisle_id, aisle.deleted_at.is_(None)))
            .outerjoin(section, and_(section.id == StoreItem.section_id, section.deleted_at.is_(None)))
            .where(StoreItem.store_id == store_id, StoreItem.deleted_at.is_(None))
            .order_by(StoreItem.name_norm, StoreItem.created_at)
        )
        with self._read() as session:
            rows = session.execute(query).all()

        views = []
        for item, a, s in rows:
            views.append(CatalogItemView(
                id=item.id,
                store_id=item.store_id,
                name=item.name,
                name_norm=item.name_norm,
                usage_count=item.usage_count,
                last_used_at=item.last_used_at,
                is_hidden=item.is_hidden,
                is_favorite=item.is_favorite,
                aisle_id=a.id if a else None,
                aisle_name=a.name if a else None,
                aisle_sort_order=a.sort_order if a else None,
                section_id=s.id if s else None,
                section_name=s.name if s else None,
                section_sort_order=s.sort_order if s else None,
            ))
        return views

    def get_item(self, item_id: str) -> StoreItem:
        with self._read() as session:
            return self._get_live(session, StoreItem, item_id, "Item")

    def find_item_by_name(self, store_id: str, name: str) -> Optional[StoreItem]:
        """Find the live item whose normalized name matches ``name``."""
        name_norm = normalize_item_name(name)
        if not name_norm:
            return None
        with self._read() as session:
            return find_live_item(session, store_id, name_norm)

    def update_item(
        self,
        item_id: str,
        name: Optional[str] = None,
        aisle_id: Optional[str] = UNSET,
        section_id: Optional[str] = UNSET
    ) -> StoreItem:
        """
        Rename or relocate a catalog item.

        Args:
            item_id: Item to update
            name: New name, unchanged when None
            aisle_id: New aisle; None clears it, omitted keeps it
            section_id: New section; None clears it, omitted keeps it

        Returns:
            The updated item
        """
        if name is not None:
            name = self._validate_name(name)
        with self._write() as session:
            item = self._get_live(session, StoreItem, item_id, "Item")
            if name is not None:
                name_norm = normalize_item_name(name)
                self._check_unique(session, item.store_id, name_norm, exclude_id=item.id)
                item.name = name
                item.name_norm = name_norm
            if aisle_id is not UNSET or section_id is not UNSET:
                new_section = item.section_id if section_id is UNSET else section_id
                new_aisle = item.aisle_id if aisle_id is UNSET else aisle_id
                if section_id is UNSET and aisle_id is not UNSET and new_aisle != item.aisle_id:
                    # Moving to another aisle leaves the current section behind
                    new_section = None
                aisle, section = resolve_location(session, item.store_id, new_aisle, new_section)
                item.aisle_id = aisle.id if aisle else None
                item.section_id = section.id if section else None
            session.flush()
        self._log_action("update_item", item_id=item_id, name=item.name)
        return item

    def toggle_favorite(self, item_id: str) -> StoreItem:
        with self._write() as session:
            item = self._get_live(session, StoreItem, item_id, "Item")
            item.is_favorite = not item.is_favorite
            session.flush()
        self._log_action("toggle_favorite", item_id=item_id, is_favorite=item.is_favorite)
        return item

    def set_hidden(self, item_id: str, hidden: bool) -> StoreItem:
        """Hide an item from suggestions, or show it again."""
        with self._write() as session:
            item = self._get_live(session, StoreItem, item_id, "Item")
            item.is_hidden = hidden
            session.flush()
        self._log_action("set_hidden", item_id=item_id, is_hidden=hidden)
        return item

    def soft_delete_item(self, item_id: str) -> None:
        with self._write() as session:
            item = self._get_live(session, StoreItem, item_id, "Item")
            item.deleted_at = self._get_now()
            session.flush()
        self._log_action("soft_delete_item", item_id=item_id)

    def get_or_create_item(
        self,
        store_id: str,
        name: str,
        aisle_id: Optional[str] = None,
        section_id: Optional[str] = None
    ) -> Tuple[StoreItem, bool]:
        """
        Reuse the item matching ``name`` or create it.

        A reused item has its usage bumped and adopts the given location
        when one is supplied.

        Args:
            store_id: Owning store
            name: Display name used when creating
            aisle_id: Optional aisle
            section_id: Optional section

        Returns:
            The item and whether it was created
        """
        name = self._validate_name(name)
        name_norm = normalize_item_name(name)
        with self._write() as session:
            self._get_live(session, Store, store_id, "Store")
            aisle, section = resolve_location(session, store_id, aisle_id, section_id)
            now = self._get_now()
            item = find_live_item(session, store_id, name_norm)
            created = item is None
            if created:
                item = StoreItem(
                    store_id=store_id,
                    name=name,
                    name_norm=name_norm,
                    usage_count=1,
                    last_used_at=now
                )
                session.add(item)
            else:
                item.usage_count = (item.usage_count or 0) + 1
                item.last_used_at = now
            if aisle is not None:
                item.aisle_id = aisle.id
                item.section_id = section.id if section else None
            session.flush()
        self._log_action(
            "get_or_create_item",
            item_id=item.id,
            store_id=store_id,
            created=created
        )
        return item, created

    def search_items(
        self,
        store_id: str,
        term: str,
        limit: Optional[int] = None
    ) -> List[StoreItem]:
        """
        Autocomplete catalog items by normalized-name prefix.

        Args:
            store_id: Store to search
            term: Typed prefix
            limit: Maximum results, the service default when None

        Returns:
            Visible items, most used first
        """
        prefix = " ".join((term or "").lower().split())
        if not prefix:
            return []
        query = (
            select(StoreItem)
            .where(
                StoreItem.store_id == store_id,
                StoreItem.deleted_at.is_(None),
                StoreItem.is_hidden.is_(False),
                func.substr(StoreItem.name_norm, 1, len(prefix)) == prefix
            )
            .order_by(
                StoreItem.usage_count.desc(),
                StoreItem.last_used_at.desc(),
                StoreItem.name_norm
            )
            .limit(limit or self.search_limit)
        )
        with self._read() as session:
            return list(session.scalars(query))
