"""Store layout service: aisles and sections."""
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from aislewise.domain.types import AisleNode, ReorderUpdate, SectionNode, StoreScanResult
from aislewise.errors import ConstraintViolation, NotFoundError
from aislewise.models import Store, StoreAisle, StoreSection, StoreItem
from .base_service import BaseService

ReorderInput = Union[ReorderUpdate, Mapping[str, Any]]
ScanInput = Union[StoreScanResult, Mapping[str, Any]]


def resolve_location(
    session: Session,
    store_id: str,
    aisle_id: Optional[str],
    section_id: Optional[str]
) -> Tuple[Optional[StoreAisle], Optional[StoreSection]]:
    """
    Validate a location inside a store.

    A section implies its aisle; an explicit aisle must agree with it.

    Args:
        session: Open session
        store_id: Store the location must belong to
        aisle_id: Requested aisle, if any
        section_id: Requested section, if any

    Returns:
        The aisle and section rows (either may be None)

    Raises:
        NotFoundError: If a referenced aisle or section is missing or deleted
        ConstraintViolation: If the location belongs to another store or
            the aisle and section disagree
    """
    section = None
    if section_id is not None:
        section = session.get(StoreSection, section_id)
        if section is None or section.deleted_at is not None:
            raise NotFoundError("Section", section_id)
        if section.store_id != store_id:
            raise ConstraintViolation(
                f"Section '{section_id}' belongs to another store",
                metadata={'section_id': section_id, 'store_id': store_id}
            )
        if aisle_id is not None and aisle_id != section.aisle_id:
            raise ConstraintViolation(
                f"Section '{section_id}' is not in aisle '{aisle_id}'",
                metadata={'section_id': section_id, 'aisle_id': aisle_id}
            )
        aisle_id = section.aisle_id

    aisle = None
    if aisle_id is not None:
        aisle = session.get(StoreAisle, aisle_id)
        if aisle is None or aisle.deleted_at is not None:
            raise NotFoundError("Aisle", aisle_id)
        if aisle.store_id != store_id:
            raise ConstraintViolation(
                f"Aisle '{aisle_id}' belongs to another store",
                metadata={'aisle_id': aisle_id, 'store_id': store_id}
            )
    return aisle, section


def _as_updates(updates: Iterable[ReorderInput]) -> List[ReorderUpdate]:
    return [
        u if isinstance(u, ReorderUpdate) else ReorderUpdate.model_validate(u)
        for u in updates
    ]


class LayoutService(BaseService):
    """Service for managing aisles and sections of a store."""

    def _next_sort_order(self, session: Session, model, *criteria) -> int:
        current = session.scalar(
            select(func.max(model.sort_order))
            .where(model.deleted_at.is_(None), *criteria)
        )
        return 0 if current is None else current + 1

    # Aisles

    def insert_aisle(self, store_id: str, name: str) -> StoreAisle:
        """
        Append an aisle to a store.

        Args:
            store_id: Owning store
            name: Display name

        Returns:
            The created aisle, placed after its live siblings
        """
        name = self._validate_name(name)
        with self._write() as session:
            self._get_live(session, Store, store_id, "Store")
            aisle = StoreAisle(
                store_id=store_id,
                name=name,
                sort_order=self._next_sort_order(
                    session, StoreAisle, StoreAisle.store_id == store_id
                )
            )
            session.add(aisle)
            session.flush()
        self._log_action("insert_aisle", aisle_id=aisle.id, store_id=store_id, name=name)
        return aisle

    def list_aisles(self, store_id: str) -> List[StoreAisle]:
        with self._read() as session:
            return list(session.scalars(
                select(StoreAisle)
                .where(StoreAisle.store_id == store_id, StoreAisle.deleted_at.is_(None))
                .order_by(StoreAisle.sort_order, StoreAisle.created_at)
            ))

    def get_aisle(self, aisle_id: str) -> StoreAisle:
        with self._read() as session:
            return self._get_live(session, StoreAisle, aisle_id, "Aisle")

    def update_aisle(self, aisle_id: str, name: str) -> StoreAisle:
        """Rename an aisle."""
        name = self._validate_name(name)
        with self._write() as session:
            aisle = self._get_live(session, StoreAisle, aisle_id, "Aisle")
            aisle.name = name
            session.flush()
        self._log_action("update_aisle", aisle_id=aisle_id, name=name)
        return aisle

    def soft_delete_aisle(self, aisle_id: str) -> None:
        """
        Soft delete an aisle and its sections.

        Catalog items located in the aisle stay in the catalog with no
        location.

        Args:
            aisle_id: Aisle to delete
        """
        with self._write() as session:
            aisle = self._get_live(session, StoreAisle, aisle_id, "Aisle")
            now = self._get_now()
            section_ids = list(session.scalars(
                select(StoreSection.id)
                .where(StoreSection.aisle_id == aisle_id, StoreSection.deleted_at.is_(None))
            ))
            session.execute(
                update(StoreSection)
                .where(StoreSection.id.in_(section_ids))
                .values(deleted_at=now)
            )
            session.execute(
                update(StoreItem)
                .where(or_(
                    StoreItem.aisle_id == aisle_id,
                    StoreItem.section_id.in_(section_ids)
                ))
                .values(aisle_id=None, section_id=None)
            )
            aisle.deleted_at = now
            session.flush()
        self._log_action(
            "soft_delete_aisle",
            aisle_id=aisle_id,
            sections_deleted=len(section_ids)
        )

    def reorder_aisles(self, updates: Iterable[ReorderInput]) -> List[StoreAisle]:
        """
        Set the sort order of sibling aisles atomically.

        Args:
            updates: ``{id, sort_order}`` pairs, all in the same store

        Returns:
            The updated aisles

        Raises:
            NotFoundError: If an id is unknown or soft deleted
            ConstraintViolation: If an aisle belongs to another store.
                No aisle is changed in either case.
        """
        updates = _as_updates(updates)
        if not updates:
            return []
        with self._write() as session:
            store_id = self._get_live(session, StoreAisle, updates[0].id, "Aisle").store_id
            rows = self._apply_reorder(
                session, StoreAisle, "Aisle", updates,
                StoreAisle.store_id == store_id
            )
        self._log_action("reorder_aisles", store_id=store_id, count=len(rows))
        return rows

    # Sections

    def insert_section(self, store_id: str, aisle_id: str, name: str) -> StoreSection:
        """
        Append a section to an aisle.

        Args:
            store_id: Owning store
            aisle_id: Aisle in the same store
            name: Display name

        Returns:
            The created section
        """
        name = self._validate_name(name)
        with self._write() as session:
            self._get_live(session, Store, store_id, "Store")
            aisle = self._get_live(session, StoreAisle, aisle_id, "Aisle")
            if aisle.store_id != store_id:
                raise ConstraintViolation(
                    f"Aisle '{aisle_id}' belongs to another store",
                    metadata={'aisle_id': aisle_id, 'store_id': store_id}
                )
            section = StoreSection(
                store_id=store_id,
                aisle_id=aisle_id,
                name=name,
                sort_order=self._next_sort_order(
                    session, StoreSection, StoreSection.aisle_id == aisle_id
                )
            )
            session.add(section)
            session.flush()
        self._log_action(
            "insert_section",
            section_id=section.id,
            aisle_id=aisle_id,
            name=name
        )
        return section

    def list_sections(self, store_id: str, aisle_id: Optional[str] = None) -> List[StoreSection]:
        """List live sections of a store, optionally of one aisle."""
        query = (
            select(StoreSection)
            .where(StoreSection.store_id == store_id, StoreSection.deleted_at.is_(None))
            .order_by(StoreSection.sort_order, StoreSection.created_at)
        )
        if aisle_id is not None:
            query = query.where(StoreSection.aisle_id == aisle_id)
        with self._read() as session:
            return list(session.scalars(query))

    def get_section(self, section_id: str) -> StoreSection:
        with self._read() as session:
            return self._get_live(session, StoreSection, section_id, "Section")

    def update_section(
        self,
        section_id: str,
        name: Optional[str] = None,
        aisle_id: Optional[str] = None
    ) -> StoreSection:
        """
        Rename a section or move it to another aisle of the same store.

        A moved section goes to the end of its new aisle, and catalog items
        in it follow it to that aisle.

        Args:
            section_id: Section to change
            name: New name, unchanged when None
            aisle_id: New aisle, unchanged when None

        Returns:
            The updated section
        """
        if name is not None:
            name = self._validate_name(name)
        with self._write() as session:
            section = self._get_live(session, StoreSection, section_id, "Section")
            if name is not None:
                section.name = name
            if aisle_id is not None and aisle_id != section.aisle_id:
                aisle = self._get_live(session, StoreAisle, aisle_id, "Aisle")
                if aisle.store_id != section.store_id:
                    raise ConstraintViolation(
                        f"Aisle '{aisle_id}' belongs to another store",
                        metadata={'aisle_id': aisle_id, 'section_id': section_id}
                    )
                section.sort_order = self._next_sort_order(
                    session, StoreSection, StoreSection.aisle_id == aisle_id
                )
                section.aisle_id = aisle_id
                session.execute(
                    update(StoreItem)
                    .where(StoreItem.section_id == section_id)
                    .values(aisle_id=aisle_id)
                )
            session.flush()
        self._log_action("update_section", section_id=section_id, aisle_id=section.aisle_id)
        return section

    def soft_delete_section(self, section_id: str) -> None:
        """Soft delete a section; its catalog items keep their aisle."""
        with self._write() as session:
            section = self._get_live(session, StoreSection, section_id, "Section")
            session.execute(
                update(StoreItem)
                .where(StoreItem.section_id == section_id)
                .values(section_id=None)
            )
            section.deleted_at = self._get_now()
            session.flush()
        self._log_action("soft_delete_section", section_id=section_id)

    def reorder_sections(self, updates: Iterable[ReorderInput]) -> List[StoreSection]:
        """
        Set the sort order of sections of one aisle atomically.

        Raises:
            NotFoundError: If an id is unknown or soft deleted
            ConstraintViolation: If a section is in another aisle
        """
        updates = _as_updates(updates)
        if not updates:
            return []
        with self._write() as session:
            aisle_id = self._get_live(session, StoreSection, updates[0].id, "Section").aisle_id
            rows = self._apply_reorder(
                session, StoreSection, "Section", updates,
                StoreSection.aisle_id == aisle_id
            )
        self._log_action("reorder_sections", aisle_id=aisle_id, count=len(rows))
        return rows

    def _apply_reorder(self, session: Session, model, entity: str, updates, sibling_clause):
        """Write each sort order, failing on the first row that is not a live sibling."""
        for u in updates:
            result = session.execute(
                update(model)
                .where(model.id == u.id, model.deleted_at.is_(None), sibling_clause)
                .values(sort_order=u.sort_order)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                row = session.get(model, u.id)
                if row is None or row.deleted_at is not None:
                    raise NotFoundError(entity, u.id)
                raise ConstraintViolation(
                    f"{entity} '{u.id}' is not a sibling of the reordered rows",
                    metadata={'id': u.id}
                )
        session.expire_all()
        return list(session.scalars(
            select(model)
            .where(model.id.in_([u.id for u in updates]))
            .order_by(model.sort_order, model.created_at)
        ))

    def import_layout(self, store_id: str, scan: ScanInput) -> List[AisleNode]:
        """
        Merge a scanned store directory into a store's layout.

        Aisles are matched to live aisles by name, ignoring case; unknown
        ones are appended in scan order. Sections missing from their aisle
        are appended the same way. Nothing is renamed or removed.

        Args:
            store_id: Store to extend
            scan: Scanned aisles with their section names

        Returns:
            The store's layout tree after the merge

        Raises:
            ConstraintViolation: If the scan found no aisles
        """
        if not isinstance(scan, StoreScanResult):
            scan = StoreScanResult.model_validate(scan)
        if not scan.aisles:
            raise ConstraintViolation(
                "No aisles found in the scan",
                suggestions=["Take a sharper photo of the store directory"]
            )

        aisles_added = sections_added = 0
        with self._write() as session:
            self._get_live(session, Store, store_id, "Store")
            existing = {
                aisle.name.strip().lower(): aisle
                for aisle in session.scalars(
                    select(StoreAisle)
                    .where(StoreAisle.store_id == store_id, StoreAisle.deleted_at.is_(None))
                    .order_by(StoreAisle.sort_order, StoreAisle.created_at)
                )
            }
            next_aisle = self._next_sort_order(session, StoreAisle, StoreAisle.store_id == store_id)

            for scanned in scan.aisles:
                aisle = existing.get(scanned.name.lower())
                if aisle is None:
                    aisle = StoreAisle(store_id=store_id, name=scanned.name, sort_order=next_aisle)
                    session.add(aisle)
                    session.flush()
                    existing[scanned.name.lower()] = aisle
                    next_aisle += 1
                    aisles_added += 1

                known = {
                    name.strip().lower()
                    for name in session.scalars(
                        select(StoreSection.name)
                        .where(StoreSection.aisle_id == aisle.id, StoreSection.deleted_at.is_(None))
                    )
                }
                next_section = self._next_sort_order(
                    session, StoreSection, StoreSection.aisle_id == aisle.id
                )
                for name in scanned.sections:
                    if name.lower() in known:
                        continue
                    session.add(StoreSection(
                        store_id=store_id,
                        aisle_id=aisle.id,
                        name=name,
                        sort_order=next_section
                    ))
                    known.add(name.lower())
                    next_section += 1
                    sections_added += 1
                session.flush()

        self._log_action(
            "import_layout",
            store_id=store_id,
            aisles_added=aisles_added,
            sections_added=sections_added
        )
        return self.get_layout_tree(store_id)

    def get_layout_tree(self, store_id: str) -> List[AisleNode]:
        """
        Build the live aisle/section tree of a store.

        Returns:
            Aisles in display order, each with its sections
        """
        aisles = self.list_aisles(store_id)
        sections = self.list_sections(store_id)
        tree = []
        for aisle in aisles:
            tree.append(AisleNode(
                id=aisle.id,
                name=aisle.name,
                sort_order=aisle.sort_order,
                sections=[
                    SectionNode(id=s.id, name=s.name, sort_order=s.sort_order)
                    for s in sections if s.aisle_id == aisle.id
                ]
            ))
        return tree
