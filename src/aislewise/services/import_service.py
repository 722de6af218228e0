"""Bulk import of parsed shopping items into a store's catalog and list."""
import asyncio
from contextlib import nullcontext
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from aislewise.ai.collaborators import Categorizer
from aislewise.domain.normalize import normalize_item_name, to_sentence_case
from aislewise.domain.types import (
    AisleNode, Categorization, ImportSummary, ParsedShoppingItem
)
from aislewise.errors import ConstraintViolation, NotFoundError, ReconciliationItemError
from aislewise.events.bus import ChangeBus
from aislewise.events.cache import ReadCache
from aislewise.models import QuantityUnit
from aislewise.utils.logger import get_logger
from .base_service import Result
from .entity_store import EntityStore
from .unit_service import match_unit

ParsedInput = Union[ParsedShoppingItem, Mapping[str, Any]]

LIST_ITEMS_CACHE_KEY = "shopping-list-items"


def validate_categorization(
    categorization: Any,
    tree: List[AisleNode]
) -> Categorization:
    """
    Keep only the parts of a categorization that exist in ``tree``.

    An unknown aisle drops the whole location. A section outside the
    returned aisle is dropped. A known section without an aisle brings its
    own aisle.

    Args:
        categorization: Collaborator answer of any shape
        tree: Live aisles and sections of the store

    Returns:
        A location made of known ids only
    """
    if not isinstance(categorization, Categorization):
        try:
            categorization = Categorization.model_validate(categorization)
        except PydanticValidationError:
            return Categorization()

    aisles = {aisle.id: aisle for aisle in tree}
    aisle_id = categorization.aisle_id
    section_id = categorization.section_id

    if aisle_id is None and section_id is not None:
        owner = next((a for a in tree if a.find_section(section_id)), None)
        if owner is None:
            return Categorization()
        return Categorization(aisle_id=owner.id, section_id=section_id)

    aisle = aisles.get(aisle_id) if aisle_id is not None else None
    if aisle is None:
        return Categorization()
    if section_id is not None and aisle.find_section(section_id) is None:
        section_id = None
    return Categorization(aisle_id=aisle.id, section_id=section_id)


def _notes_with_unit(item: ParsedShoppingItem) -> Optional[str]:
    if not item.unit:
        return item.notes
    if not item.notes:
        return item.unit
    return f"{item.unit}; {item.notes}"


class BulkImportReconciler:
    """Merges parsed items into a store's catalog and one of its lists."""

    def __init__(
        self,
        entities: EntityStore,
        categorizer: Optional[Categorizer] = None,
        bus: Optional[ChangeBus] = None,
        cache: Optional[ReadCache] = None
    ):
        """
        Initialize the reconciler.

        Args:
            entities: Entity services to write through
            categorizer: Optional source of locations for new items
            bus: Bus whose notifications are batched during an import
            cache: Read cache invalidated for the list after an import
        """
        self.entities = entities
        self.categorizer = categorizer
        self.bus = bus
        self.cache = cache
        self.logger = get_logger(self.__class__.__name__)

    async def _categorize_one(self, name: str, tree: List[AisleNode]) -> Categorization:
        try:
            answer = await self.categorizer.categorize(name, tree)
        except Exception as e:
            self.logger.opt(exception=e).warning(
                "Categorization failed, importing uncategorized",
                item_name=name
            )
            return Categorization()
        return validate_categorization(answer, tree)

    async def _categorize_new(
        self,
        store_id: str,
        items: Iterable[ParsedShoppingItem]
    ) -> Dict[str, Categorization]:
        """Categorize every distinct name that has no catalog match, concurrently."""
        if self.categorizer is None:
            return {}

        pending: Dict[str, str] = {}
        for item in items:
            key = normalize_item_name(item.name)
            if key and key not in pending:
                if self.entities.items.find_item_by_name(store_id, item.name) is None:
                    pending[key] = item.name
        if not pending:
            return {}

        tree = self.entities.layout.get_layout_tree(store_id)
        if not tree:
            return {}

        keys = list(pending)
        answers = await asyncio.gather(
            *(self._categorize_one(pending[key], tree) for key in keys)
        )
        return dict(zip(keys, answers))

    def _import_one(
        self,
        store_id: str,
        list_id: str,
        item: ParsedShoppingItem,
        categories: Dict[str, Categorization],
        units: List[QuantityUnit],
        summary: ImportSummary
    ) -> None:
        name_norm = normalize_item_name(item.name)
        if not name_norm:
            raise ConstraintViolation(f"Item name '{item.name}' normalizes to nothing")

        unit = match_unit(item.unit, units)
        location = categories.get(name_norm, Categorization())
        list_item, created = self.entities.lists.add_item_by_name(
            list_id,
            to_sentence_case(item.name),
            qty=1 if item.quantity is None else item.quantity,
            notes=item.notes if unit is not None else _notes_with_unit(item),
            unit_id=unit.id if unit is not None else None,
            aisle_id=location.aisle_id,
            section_id=location.section_id,
            store_id=store_id
        )
        if created:
            summary.created_item_ids.append(list_item.store_item_id)
        summary.created_list_item_ids.append(list_item.id)

    async def import_items(
        self,
        store_id: str,
        list_id: str,
        parsed_items: Iterable[ParsedInput]
    ) -> Result[ImportSummary]:
        """
        Import parsed items into a store's catalog and shopping list.

        Each item is matched to the catalog by normalized name. Unmatched
        names are categorized up front, then every item is written in
        order. A failing item is logged and counted without stopping the
        batch. Listeners receive a single notification at the end; a
        listener failure is logged and does not fail the import.

        Args:
            store_id: Target store
            list_id: Target shopping list in that store
            parsed_items: Parsed descriptions, as models or mappings

        Returns:
            Result with the import summary, or a failed result when the
            list is missing or belongs to another store
        """
        entries = list(parsed_items)
        summary = ImportSummary()
        valid: List[tuple] = []
        failures: List[ReconciliationItemError] = []

        for index, entry in enumerate(entries):
            try:
                item = (
                    entry if isinstance(entry, ParsedShoppingItem)
                    else ParsedShoppingItem.model_validate(entry)
                )
            except (PydanticValidationError, TypeError) as e:
                raw_name = entry.get('name') if isinstance(entry, Mapping) else None
                failures.append(ReconciliationItemError(str(raw_name), index, e))
                continue
            valid.append((index, item))

        self.logger.info(
            "Starting bulk import",
            store_id=store_id,
            list_id=list_id,
            items=len(entries)
        )

        try:
            list_ = self.entities.lists.get_list(list_id)
        except NotFoundError as e:
            self.logger.error("Bulk import target missing", list_id=list_id)
            return Result.fail(e.message, ["Pick an existing shopping list"])
        if list_.store_id != store_id:
            self.logger.error("Bulk import target in another store", list_id=list_id, store_id=store_id)
            return Result.fail(
                f"List '{list_id}' does not belong to store '{store_id}'",
                ["Pick a shopping list of the selected store"]
            )

        categories = await self._categorize_new(store_id, (item for _, item in valid))
        units = self.entities.units.list_units()

        try:
            with self._batched():
                for index, item in valid:
                    try:
                        self._import_one(store_id, list_id, item, categories, units, summary)
                        summary.success_count += 1
                    except Exception as e:
                        failures.append(ReconciliationItemError(item.name, index, e))
        except ExceptionGroup as group:
            # Writes are committed; only change listeners failed.
            self.logger.opt(exception=group).error(
                "Change listeners failed after bulk import",
                list_id=list_id,
                listeners=len(group.exceptions)
            )
        finally:
            if self.cache is not None:
                self.cache.invalidate((LIST_ITEMS_CACHE_KEY, list_id))

        for failure in failures:
            self.logger.opt(exception=failure.cause).error(
                failure.message,
                item_name=failure.item_name,
                index=failure.index
            )
        summary.failure_count = len(failures)

        self.logger.info(
            "Bulk import finished",
            store_id=store_id,
            list_id=list_id,
            success=summary.success_count,
            failed=summary.failure_count
        )
        return Result.ok(summary)

    def _batched(self):
        if self.bus is None:
            return nullcontext()
        return self.bus.deferred()
