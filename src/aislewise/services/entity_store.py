"""Bundle of entity services handed to collaborators."""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import sessionmaker

from aislewise.config.settings import AislewiseSettings
from aislewise.events.bus import ChangeBus
from .item_service import ItemService
from .layout_service import LayoutService
from .list_service import ListService
from .setting_service import SettingService
from .store_service import StoreService
from .unit_service import UnitService


@dataclass
class EntityStore:
    """All entity services sharing one session factory and bus."""
    stores: StoreService
    layout: LayoutService
    items: ItemService
    lists: ListService
    settings: SettingService
    units: UnitService

    @classmethod
    def create(
        cls,
        session_factory: sessionmaker,
        bus: Optional[ChangeBus] = None,
        settings: Optional[AislewiseSettings] = None
    ) -> 'EntityStore':
        """
        Build every service over the same session factory.

        Args:
            session_factory: Factory for database sessions
            bus: Bus notified after writes
            settings: Defaults for store names and search limits

        Returns:
            The service bundle
        """
        kwargs = {}
        search = {}
        if settings is not None:
            kwargs['default_store_name'] = settings.DEFAULT_STORE_NAME
            search['search_limit'] = settings.SEARCH_LIMIT
        return cls(
            stores=StoreService(session_factory, bus, **kwargs),
            layout=LayoutService(session_factory, bus),
            items=ItemService(session_factory, bus, **search),
            lists=ListService(session_factory, bus),
            settings=SettingService(session_factory, bus),
            units=UnitService(session_factory, bus),
        )
