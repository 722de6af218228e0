"""Domain logic independent of storage."""
from .normalize import normalize_item_name, to_sentence_case, names_match
from .grouping import GroupKeys, AisleGroup, SectionGroup, group_items, flatten_groups, UNCATEGORIZED

__all__ = [
    'normalize_item_name', 'to_sentence_case', 'names_match',
    'GroupKeys', 'AisleGroup', 'SectionGroup', 'group_items', 'flatten_groups',
    'UNCATEGORIZED',
]
