"""Domain types for Aislewise."""
from typing import NewType, Optional, List, Annotated
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Strong types for IDs
StoreId = NewType('StoreId', str)
AisleId = NewType('AisleId', str)
SectionId = NewType('SectionId', str)
ItemId = NewType('ItemId', str)
ListId = NewType('ListId', str)
ListItemId = NewType('ListItemId', str)


class ParsedShoppingItem(BaseModel):
    """An item description produced by a bulk parser."""
    name: Annotated[str, Field(min_length=1, max_length=200)]
    quantity: Optional[Annotated[float, Field(ge=0)]] = None
    unit: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('name', mode='before')
    @classmethod
    def name_must_not_be_blank(cls, v):
        """Strip the name and reject blank names."""
        if not isinstance(v, str):
            raise ValueError('name must be a string')
        v = v.strip()
        if not v:
            raise ValueError('name cannot be empty')
        return v

    @field_validator('unit', 'notes', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class SectionNode(BaseModel):
    """A section in a store's layout tree."""
    id: SectionId
    name: str
    sort_order: int = 0


class AisleNode(BaseModel):
    """An aisle and its sections, as handed to a categorizer."""
    id: AisleId
    name: str
    sort_order: int = 0
    sections: List[SectionNode] = []

    def find_section(self, section_id: str) -> Optional[SectionNode]:
        return next((s for s in self.sections if s.id == section_id), None)


class Categorization(BaseModel):
    """Location suggested for an item."""
    aisle_id: Optional[str] = None
    section_id: Optional[str] = None


class ScannedAisle(BaseModel):
    """An aisle read off a store directory, with its section names."""
    name: Annotated[str, Field(min_length=1, max_length=200)]
    sections: List[str] = []

    @field_validator('name', mode='before')
    @classmethod
    def name_must_not_be_blank(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError('aisle name cannot be empty')
        return v.strip()

    @field_validator('sections', mode='before')
    @classmethod
    def clean_sections(cls, v):
        """Strip section names, dropping blanks and repeats."""
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError('sections must be a list')
        cleaned: List[str] = []
        seen = set()
        for name in v:
            if not isinstance(name, str):
                raise ValueError('section names must be strings')
            name = name.strip()
            if name and name.lower() not in seen:
                seen.add(name.lower())
                cleaned.append(name)
        return cleaned


class StoreScanResult(BaseModel):
    """Store layout extracted from a directory photo, in display order."""
    aisles: List[ScannedAisle] = []


class ReorderUpdate(BaseModel):
    """Target position for one sibling row."""
    id: str
    sort_order: int


class ListItemDraft(BaseModel):
    """Values for inserting or updating a shopping list item.

    Without ``id`` the draft is inserted, otherwise the existing row is
    updated. Either a catalog item or a name is required.
    """
    id: Optional[ListItemId] = None
    list_id: ListId
    store_item_id: Optional[ItemId] = None
    name: Optional[str] = None
    qty: Annotated[float, Field(ge=0)] = 1.0
    notes: Optional[str] = None
    unit_id: Optional[str] = None
    aisle_id: Optional[AisleId] = None
    section_id: Optional[SectionId] = None

    @model_validator(mode='after')
    def needs_item_or_name(self) -> 'ListItemDraft':
        if self.store_item_id is None and not (self.name and self.name.strip()):
            raise ValueError('a catalog item or a name is required')
        return self


class ImportSummary(BaseModel):
    """Aggregate outcome of a bulk import."""
    success_count: int = 0
    failure_count: int = 0
    created_item_ids: List[ItemId] = []
    created_list_item_ids: List[ListItemId] = []


class CatalogItemView(BaseModel):
    """A catalog item with its live location names."""
    model_config = ConfigDict(from_attributes=True)

    id: ItemId
    store_id: StoreId
    name: str
    name_norm: str
    usage_count: int = 0
    last_used_at: Optional[datetime] = None
    is_hidden: bool = False
    is_favorite: bool = False
    aisle_id: Optional[AisleId] = None
    aisle_name: Optional[str] = None
    aisle_sort_order: Optional[int] = None
    section_id: Optional[SectionId] = None
    section_name: Optional[str] = None
    section_sort_order: Optional[int] = None


class ListItemView(BaseModel):
    """A shopping list item as displayed, with snapshot location names."""
    model_config = ConfigDict(from_attributes=True)

    id: ListItemId
    list_id: ListId
    store_item_id: Optional[ItemId] = None
    name: str
    qty: float = 1.0
    unit_id: Optional[str] = None
    unit_abbreviation: Optional[str] = None
    notes: Optional[str] = None
    is_checked: bool = False
    aisle_id: Optional[AisleId] = None
    aisle_name: Optional[str] = None
    aisle_sort_order: Optional[int] = None
    section_id: Optional[SectionId] = None
    section_name: Optional[str] = None
    section_sort_order: Optional[int] = None
