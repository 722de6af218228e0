"""Shopping list service."""
from typing import Any, List, Mapping, Optional, Tuple, Union

from sqlalchemy import and_, select, update
from sqlalchemy.orm import Session, aliased

from aislewise.domain.grouping import AisleGroup, group_items
from aislewise.domain.normalize import normalize_item_name
from aislewise.domain.types import ListItemDraft, ListItemView
from aislewise.errors import ConstraintViolation, NotFoundError
from aislewise.models import (
    QuantityUnit, Store, StoreAisle, StoreSection, StoreItem, ShoppingList, ShoppingListItem
)
from .base_service import BaseService
from .item_service import find_live_item
from .layout_service import resolve_location

DraftInput = Union[ListItemDraft, Mapping[str, Any]]


class ListService(BaseService):
    """Service for managing shopping lists and their items."""

    # Lists

    def insert_list(self, store_id: str, title: Optional[str] = None) -> ShoppingList:
        """Start a new shopping list for a store."""
        with self._write() as session:
            self._get_live(session, Store, store_id, "Store")
            list_ = ShoppingList(store_id=store_id, title=(title or "").strip() or None)
            session.add(list_)
            session.flush()
        self._log_action("insert_list", list_id=list_.id, store_id=store_id)
        return list_

    def get_or_create_active_list(self, store_id: str) -> ShoppingList:
        """
        Return the newest open list of a store, creating one if needed.

        Args:
            store_id: Store to look in

        Returns:
            The active shopping list
        """
        with self._read() as session:
            self._get_live(session, Store, store_id, "Store")
            active = session.scalars(
                select(ShoppingList)
                .where(
                    ShoppingList.store_id == store_id,
                    ShoppingList.deleted_at.is_(None),
                    ShoppingList.completed_at.is_(None)
                )
                .order_by(ShoppingList.created_at.desc(), ShoppingList.id.desc())
                .limit(1)
            ).first()
        if active is not None:
            return active
        return self.insert_list(store_id)

    def list_lists(self, store_id: str, include_completed: bool = True) -> List[ShoppingList]:
        """List live shopping lists of a store, newest first."""
        query = (
            select(ShoppingList)
            .where(ShoppingList.store_id == store_id, ShoppingList.deleted_at.is_(None))
            .order_by(ShoppingList.created_at.desc(), ShoppingList.id.desc())
        )
        if not include_completed:
            query = query.where(ShoppingList.completed_at.is_(None))
        with self._read() as session:
            return list(session.scalars(query))

    def get_list(self, list_id: str) -> ShoppingList:
        with self._read() as session:
            return self._get_live(session, ShoppingList, list_id, "List")

    def complete_list(self, list_id: str) -> ShoppingList:
        with self._write() as session:
            list_ = self._get_live(session, ShoppingList, list_id, "List")
            list_.completed_at = self._get_now()
            session.flush()
        self._log_action("complete_list", list_id=list_id)
        return list_

    def soft_delete_list(self, list_id: str) -> None:
        """Soft delete a list together with its items."""
        with self._write() as session:
            list_ = self._get_live(session, ShoppingList, list_id, "List")
            now = self._get_now()
            session.execute(
                update(ShoppingListItem)
                .where(
                    ShoppingListItem.list_id == list_id,
                    ShoppingListItem.deleted_at.is_(None)
                )
                .values(deleted_at=now)
            )
            list_.deleted_at = now
            session.flush()
        self._log_action("soft_delete_list", list_id=list_id)

    # List items

    def _capture_location(
        self,
        session: Session,
        row: ShoppingListItem,
        aisle_id: Optional[str],
        section_id: Optional[str]
    ) -> None:
        """Store the location ids and freeze their current names on the row."""
        aisle, section = resolve_location(session, row.store_id, aisle_id, section_id)
        row.aisle_id = aisle.id if aisle else None
        row.aisle_name_snap = aisle.name if aisle else None
        row.section_id = section.id if section else None
        row.section_name_snap = section.name if section else None

    def _fill_list_item(
        self,
        session: Session,
        row: ShoppingListItem,
        catalog_item: Optional[StoreItem],
        draft: ListItemDraft
    ) -> None:
        """Copy draft values onto ``row`` and take a fresh location snapshot."""
        if draft.unit_id is not None and session.get(QuantityUnit, draft.unit_id) is None:
            raise NotFoundError("Unit", draft.unit_id)

        name = (draft.name or "").strip() or catalog_item.name
        row.store_item_id = catalog_item.id if catalog_item else None
        row.name = name
        row.name_norm = normalize_item_name(name)
        row.qty = draft.qty
        row.unit_id = draft.unit_id
        row.notes = draft.notes
        if catalog_item is not None:
            self._capture_location(
                session, row, catalog_item.aisle_id, catalog_item.section_id
            )
        else:
            self._capture_location(session, row, draft.aisle_id, draft.section_id)

    def _mark_used(self, catalog_item: StoreItem) -> None:
        catalog_item.usage_count = (catalog_item.usage_count or 0) + 1
        catalog_item.last_used_at = self._get_now()

    def upsert_list_item(self, draft: DraftInput) -> ShoppingListItem:
        """
        Insert or update a shopping list item.

        The aisle and section snapshots are taken again on every save: from
        the catalog item's current location when one is referenced, else
        from the draft.

        Args:
            draft: Item values; inserted when ``id`` is empty

        Returns:
            The saved list item

        Raises:
            NotFoundError: If the list, item, catalog item or unit does not exist
            ConstraintViolation: If the catalog item belongs to another store
        """
        if not isinstance(draft, ListItemDraft):
            draft = ListItemDraft.model_validate(draft)

        with self._write() as session:
            list_ = self._get_live(session, ShoppingList, draft.list_id, "List")
            catalog_item = None
            if draft.store_item_id is not None:
                catalog_item = self._get_live(session, StoreItem, draft.store_item_id, "Item")
                if catalog_item.store_id != list_.store_id:
                    raise ConstraintViolation(
                        f"Item '{catalog_item.id}' belongs to another store",
                        metadata={'store_item_id': catalog_item.id, 'list_id': list_.id}
                    )

            if draft.id is None:
                row = ShoppingListItem(list_id=list_.id, store_id=list_.store_id)
                session.add(row)
                action = "insert_list_item"
            else:
                row = self._get_live(session, ShoppingListItem, draft.id, "ListItem")
                if row.list_id != list_.id:
                    raise ConstraintViolation(
                        f"List item '{draft.id}' is not on list '{list_.id}'",
                        metadata={'id': draft.id, 'list_id': list_.id}
                    )
                action = "update_list_item"

            self._fill_list_item(session, row, catalog_item, draft)
            if catalog_item is not None and draft.id is None:
                self._mark_used(catalog_item)
            session.flush()

        self._log_action(action, list_item_id=row.id, list_id=row.list_id, name=row.name)
        return row

    def add_item_by_name(
        self,
        list_id: str,
        name: str,
        qty: float = 1.0,
        notes: Optional[str] = None,
        unit_id: Optional[str] = None,
        aisle_id: Optional[str] = None,
        section_id: Optional[str] = None,
        store_id: Optional[str] = None
    ) -> Tuple[ShoppingListItem, bool]:
        """
        Add an item to a list by name, creating its catalog item if needed.

        The catalog lookup, the catalog insert and the list item insert
        share one transaction, so a failing list item leaves no new
        catalog item behind. The location only applies to a new catalog
        item; an existing one keeps its own.

        Args:
            list_id: Target list
            name: Item name, also the display name of a new catalog item
            qty: Quantity, at least 0
            notes: Free-form notes
            unit_id: Optional quantity unit
            aisle_id: Aisle for a new catalog item
            section_id: Section for a new catalog item
            store_id: Store the list must belong to, when given

        Returns:
            The new list item and whether a catalog item was created

        Raises:
            NotFoundError: If the list, unit or location does not exist
            ConstraintViolation: If the list belongs to another store
        """
        name = self._validate_name(name)
        name_norm = normalize_item_name(name)
        draft = ListItemDraft(list_id=list_id, name=name, qty=qty, notes=notes, unit_id=unit_id)

        with self._write() as session:
            list_ = self._get_live(session, ShoppingList, list_id, "List")
            if store_id is not None and list_.store_id != store_id:
                raise ConstraintViolation(
                    f"List '{list_id}' belongs to another store",
                    metadata={'list_id': list_id, 'store_id': store_id}
                )

            catalog_item = find_live_item(session, list_.store_id, name_norm)
            created = catalog_item is None
            if created:
                aisle, section = resolve_location(session, list_.store_id, aisle_id, section_id)
                catalog_item = StoreItem(
                    store_id=list_.store_id,
                    name=name,
                    name_norm=name_norm,
                    aisle_id=aisle.id if aisle else None,
                    section_id=section.id if section else None,
                    usage_count=0
                )
                session.add(catalog_item)
                session.flush()

            row = ShoppingListItem(list_id=list_.id, store_id=list_.store_id)
            session.add(row)
            self._fill_list_item(
                session, row, catalog_item,
                draft.model_copy(update={'store_item_id': catalog_item.id, 'name': None})
            )
            self._mark_used(catalog_item)
            session.flush()

        self._log_action(
            "add_item_by_name",
            list_item_id=row.id,
            list_id=list_id,
            store_item_id=catalog_item.id,
            created=created
        )
        return row, created

    def list_list_items(self, list_id: str, include_checked: bool = True) -> List[ShoppingListItem]:
        """
        List the live items of a list in shopping order.

        Unchecked items come first, then by aisle and section position,
        then by name.
        """
        aisle = aliased(StoreAisle)
        section = aliased(StoreSection)
        query = (
            select(ShoppingListItem)
            .outerjoin(aisle, and_(aisle.id == ShoppingListItem.aisle_id, aisle.deleted_at.is_(None)))
            .outerjoin(section, and_(section.id == ShoppingListItem.section_id, section.deleted_at.is_(None)))
            .where(ShoppingListItem.list_id == list_id, ShoppingListItem.deleted_at.is_(None))
            .order_by(
                ShoppingListItem.is_checked,
                aisle.sort_order.is_not(None),
                aisle.sort_order,
                section.sort_order.is_not(None),
                section.sort_order,
                ShoppingListItem.name_norm,
                ShoppingListItem.created_at
            )
        )
        if not include_checked:
            query = query.where(ShoppingListItem.is_checked.is_(False))
        with self._read() as session:
            self._get_live(session, ShoppingList, list_id, "List")
            return list(session.scalars(query))

    def get_list_item(self, list_item_id: str) -> ShoppingListItem:
        with self._read() as session:
            return self._get_live(session, ShoppingListItem, list_item_id, "ListItem")

    def set_checked(self, list_item_id: str, checked: bool) -> ShoppingListItem:
        """Check or uncheck a list item."""
        with self._write() as session:
            row = self._get_live(session, ShoppingListItem, list_item_id, "ListItem")
            row.is_checked = checked
            row.checked_at = self._get_now() if checked else None
            session.flush()
        self._log_action("set_checked", list_item_id=list_item_id, checked=checked)
        return row

    def soft_delete_list_item(self, list_item_id: str) -> None:
        with self._write() as session:
            row = self._get_live(session, ShoppingListItem, list_item_id, "ListItem")
            row.deleted_at = self._get_now()
            session.flush()
        self._log_action("soft_delete_list_item", list_item_id=list_item_id)

    def clear_checked(self, list_id: str) -> int:
        """
        Soft delete the checked items of a list.

        Returns:
            Number of removed items
        """
        with self._write() as session:
            self._get_live(session, ShoppingList, list_id, "List")
            result = session.execute(
                update(ShoppingListItem)
                .where(
                    ShoppingListItem.list_id == list_id,
                    ShoppingListItem.is_checked.is_(True),
                    ShoppingListItem.deleted_at.is_(None)
                )
                .values(deleted_at=self._get_now())
            )
            cleared = result.rowcount
        self._log_action("clear_checked", list_id=list_id, cleared=cleared)
        return cleared

    def grouped_list_items(self, list_id: str) -> List[AisleGroup[ListItemView]]:
        """
        Group a list's live items by aisle and section for display.

        Names come from the snapshots taken when each item was saved;
        positions come from the aisles and sections that still exist.
        """
        aisle = aliased(StoreAisle)
        section = aliased(StoreSection)
        query = (
            select(ShoppingListItem, aisle.sort_order, section.sort_order, QuantityUnit.abbreviation)
            .outerjoin(aisle, and_(aisle.id == ShoppingListItem.aisle_id, aisle.deleted_at.is_(None)))
            .outerjoin(section, and_(section.id == ShoppingListItem.section_id, section.deleted_at.is_(None)))
            .outerjoin(QuantityUnit, QuantityUnit.id == ShoppingListItem.unit_id)
            .where(ShoppingListItem.list_id == list_id, ShoppingListItem.deleted_at.is_(None))
        )
        with self._read() as session:
            self._get_live(session, ShoppingList, list_id, "List")
            rows = session.execute(query).all()

        views = [
            ListItemView(
                id=row.id,
                list_id=row.list_id,
                store_item_id=row.store_item_id,
                name=row.name,
                qty=row.qty,
                unit_id=row.unit_id,
                unit_abbreviation=unit_abbreviation,
                notes=row.notes,
                is_checked=row.is_checked,
                aisle_id=row.aisle_id,
                aisle_name=row.aisle_name_snap,
                aisle_sort_order=aisle_order,
                section_id=row.section_id,
                section_name=row.section_name_snap,
                section_sort_order=section_order,
            )
            for row, aisle_order, section_order, unit_abbreviation in rows
        ]
        return group_items(views)
