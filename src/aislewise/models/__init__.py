"""Models package for Aislewise."""
from .base import Base
from .store import Store, StoreAisle, StoreSection
from .item import StoreItem
from .shopping_list import ShoppingList, ShoppingListItem
from .setting import AppSetting
from .unit import QuantityUnit

__all__ = [
    'Base',
    'Store',
    'StoreAisle',
    'StoreSection',
    'StoreItem',
    'ShoppingList',
    'ShoppingListItem',
    'AppSetting',
    'QuantityUnit',
]
