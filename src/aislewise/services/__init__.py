"""Entity services and the bulk import pipeline."""
from .base_service import BaseService, Result
from .store_service import StoreService
from .layout_service import LayoutService
from .item_service import ItemService
from .list_service import ListService
from .setting_service import SettingService
from .unit_service import UnitService
from .entity_store import EntityStore
from .import_service import BulkImportReconciler

__all__ = [
    'BaseService', 'Result',
    'StoreService', 'LayoutService', 'ItemService', 'ListService', 'SettingService', 'UnitService',
    'EntityStore', 'BulkImportReconciler',
]
