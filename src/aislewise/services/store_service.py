"""Store management service."""
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from aislewise.events.bus import ChangeBus
from aislewise.models import (
    Store, StoreAisle, StoreSection, StoreItem, ShoppingList, ShoppingListItem
)
from .base_service import BaseService

DEFAULT_STORE_NAME = "Unnamed store"

# Children soft deleted along with their store, leaves first
STORE_CHILDREN = (ShoppingListItem, ShoppingList, StoreItem, StoreSection, StoreAisle)


def ensure_store_exists(session: Session, name: str = DEFAULT_STORE_NAME) -> Tuple[Store, bool]:
    """
    Return the oldest live store, creating one when none exists.

    Args:
        session: Session inside an open transaction
        name: Name for a newly created store

    Returns:
        The store and whether it was created
    """
    store = session.scalars(
        select(Store)
        .where(Store.deleted_at.is_(None))
        .order_by(Store.created_at, Store.id)
        .limit(1)
    ).first()
    if store is not None:
        return store, False
    store = Store(name=name)
    session.add(store)
    session.flush()
    return store, True


class StoreService(BaseService):
    """Service for managing stores."""

    def __init__(
        self,
        session_factory: sessionmaker,
        bus: Optional[ChangeBus] = None,
        default_store_name: str = DEFAULT_STORE_NAME
    ):
        super().__init__(session_factory, bus)
        self.default_store_name = default_store_name

    def insert_store(self, name: str) -> Store:
        """
        Create a store.

        Args:
            name: Display name

        Returns:
            The created store
        """
        name = self._validate_name(name)
        with self._write() as session:
            store = Store(name=name)
            session.add(store)
            session.flush()
        self._log_action("insert_store", store_id=store.id, name=name)
        return store

    def list_stores(self) -> List[Store]:
        """List live stores by name, case-insensitively."""
        with self._read() as session:
            return list(session.scalars(
                select(Store)
                .where(Store.deleted_at.is_(None))
                .order_by(func.lower(Store.name), Store.created_at)
            ))

    def get_store(self, store_id: str) -> Store:
        with self._read() as session:
            return self._get_live(session, Store, store_id, "Store")

    def update_store(self, store_id: str, name: str) -> Store:
        """Rename a store."""
        name = self._validate_name(name)
        with self._write() as session:
            store = self._get_live(session, Store, store_id, "Store")
            store.name = name
            session.flush()
        self._log_action("update_store", store_id=store_id, name=name)
        return store

    def soft_delete_store(self, store_id: str) -> None:
        """
        Soft delete a store with its layout, catalog and lists.

        When no live store remains a default store is created in the same
        transaction.

        Args:
            store_id: Store to delete

        Raises:
            NotFoundError: If the store is missing or already deleted
        """
        with self._write() as session:
            store = self._get_live(session, Store, store_id, "Store")
            now = self._get_now()
            for model in STORE_CHILDREN:
                session.execute(
                    update(model)
                    .where(model.store_id == store_id, model.deleted_at.is_(None))
                    .values(deleted_at=now)
                )
            store.deleted_at = now
            session.flush()
            replacement, created = ensure_store_exists(session, self.default_store_name)
        self._log_action(
            "soft_delete_store",
            store_id=store_id,
            replacement_id=replacement.id if created else None
        )

    def ensure_default_store(self) -> Store:
        """
        Make sure at least one live store exists.

        Returns:
            The oldest live store, possibly newly created
        """
        with self.transactions.transaction() as session:
            store, created = ensure_store_exists(session, self.default_store_name)
        if created:
            self._log_action("ensure_default_store", store_id=store.id)
            self._publish()
        return store
