"""Group display items by aisle and section in a deterministic order.

Uncategorized entries come first at both levels. Categorized aisles and
sections follow by ascending sort order, then by name (case-sensitive),
then by id. Items inside a section are ordered by name, then id.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

T = TypeVar('T')

UNCATEGORIZED = "Uncategorized"

KeyFn = Callable[[Any], Any]


def attr(name: str) -> KeyFn:
    """Key function reading ``name`` from a mapping or an object."""
    def read(item: Any) -> Any:
        if isinstance(item, dict):
            return item.get(name)
        return getattr(item, name, None)
    read.__name__ = f"attr_{name}"
    return read


@dataclass(frozen=True)
class GroupKeys:
    """Functions extracting grouping keys from an item."""
    aisle_id: KeyFn = attr("aisle_id")
    aisle_name: KeyFn = attr("aisle_name")
    aisle_sort_order: KeyFn = attr("aisle_sort_order")
    section_id: KeyFn = attr("section_id")
    section_name: KeyFn = attr("section_name")
    section_sort_order: KeyFn = attr("section_sort_order")
    item_name: KeyFn = attr("name")
    item_id: KeyFn = attr("id")


@dataclass
class SectionGroup(Generic[T]):
    """Items sharing one section inside an aisle."""
    section_id: Optional[Any]
    name: Optional[str]
    sort_order: Optional[int]
    items: List[T] = field(default_factory=list)

    @property
    def is_uncategorized(self) -> bool:
        return self.section_id is None and self.name is None

    @property
    def label(self) -> str:
        return self.name or UNCATEGORIZED


@dataclass
class AisleGroup(Generic[T]):
    """Sections sharing one aisle."""
    aisle_id: Optional[Any]
    name: Optional[str]
    sort_order: Optional[int]
    sections: List[SectionGroup[T]] = field(default_factory=list)

    @property
    def is_uncategorized(self) -> bool:
        return self.aisle_id is None and self.name is None

    @property
    def label(self) -> str:
        return self.name or UNCATEGORIZED

    @property
    def items(self) -> List[T]:
        return [item for section in self.sections for item in section.items]


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _group_sort_key(ident: Any, name: Optional[str], sort_order: Optional[int]) -> Tuple:
    if ident is None:
        return (0, 0, 0, "", "")
    return (
        1,
        sort_order is None,
        sort_order if sort_order is not None else 0,
        _text(name),
        _text(ident),
    )


def group_items(items: Iterable[T], keys: GroupKeys = GroupKeys()) -> List[AisleGroup[T]]:
    """
    Group items by aisle, then by section.

    An aisle or section is identified by its id, or by its name when the id
    is missing. Entries with neither are uncategorized.

    Args:
        items: Flat display items
        keys: Key functions for reading locations and names

    Returns:
        Aisle groups in render order
    """
    aisles: Dict[Any, AisleGroup[T]] = {}
    sections: Dict[Tuple[Any, Any], SectionGroup[T]] = {}

    for item in items:
        aisle_name = keys.aisle_name(item)
        aisle_key = keys.aisle_id(item)
        if aisle_key is None:
            aisle_key = aisle_name
        aisle = aisles.get(aisle_key)
        if aisle is None:
            aisle = AisleGroup(
                aisle_id=keys.aisle_id(item),
                name=aisle_name,
                sort_order=keys.aisle_sort_order(item),
            )
            aisles[aisle_key] = aisle

        section_name = keys.section_name(item)
        section_key = keys.section_id(item)
        if section_key is None:
            section_key = section_name
        section = sections.get((aisle_key, section_key))
        if section is None:
            section = SectionGroup(
                section_id=keys.section_id(item),
                name=section_name,
                sort_order=keys.section_sort_order(item),
            )
            sections[(aisle_key, section_key)] = section
            aisle.sections.append(section)
        section.items.append(item)

    def item_key(item: T) -> Tuple[str, str]:
        return (_text(keys.item_name(item)), _text(keys.item_id(item)))

    for section in sections.values():
        section.items.sort(key=item_key)

    ordered = sorted(
        aisles.items(),
        key=lambda kv: _group_sort_key(kv[0], kv[1].name, kv[1].sort_order)
    )
    result = []
    for _, aisle in ordered:
        aisle.sections.sort(
            key=lambda s: _group_sort_key(
                s.section_id if s.section_id is not None else s.name,
                s.name,
                s.sort_order
            )
        )
        result.append(aisle)
    return result


def flatten_groups(groups: Iterable[AisleGroup[T]]) -> Iterator[T]:
    """Yield items in render order."""
    for aisle in groups:
        for section in aisle.sections:
            yield from section.items
