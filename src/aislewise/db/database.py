"""Database facade owning the engine, services and change notification."""
from typing import Iterable, Optional

from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from aislewise.config.settings import AislewiseSettings, get_settings
from aislewise.errors import AislewiseError
from aislewise.events.bus import ChangeBus
from aislewise.events.cache import ReadCache
from aislewise.models import Base
from aislewise.utils.logger import get_logger
from .backends import DatabaseBackend, get_backend
from .migrations import run_migrations, seed_quantity_units
from .session import TransactionManager, make_session_factory


class Database:
    """A migrated database with its entity services.

    Construct it at the application root and pass it, or its ``entities``,
    to whatever needs data access.
    """

    def __init__(
        self,
        backend: DatabaseBackend,
        bus: Optional[ChangeBus] = None,
        settings: Optional[AislewiseSettings] = None
    ):
        self.backend = backend
        self.bus = bus or ChangeBus()
        self.cache = ReadCache(self.bus)
        self.settings = settings or get_settings()
        self.logger = get_logger(self.__class__.__name__)
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._entities = None
        self.schema_version = 0

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def initialize(self) -> 'Database':
        """
        Open the backend, apply migrations and ensure a store exists.

        Calling it again is a no-op.

        Raises:
            BackendUnavailable: If the backend cannot be opened
            SchemaError: If a migration fails
        """
        if self.is_initialized:
            return self

        # Imported here to keep db importable from the services package
        from aislewise.services.entity_store import EntityStore

        engine = self.backend.create_engine()
        try:
            self.schema_version = run_migrations(engine)
        except Exception:
            engine.dispose()
            raise

        self._engine = engine
        self._session_factory = make_session_factory(engine)
        self._entities = EntityStore.create(self._session_factory, self.bus, self.settings)
        self._entities.stores.ensure_default_store()
        self.logger.info(
            "Database initialized",
            backend=self.backend.describe(),
            schema_version=self.schema_version
        )
        return self

    def _require(self):
        if not self.is_initialized:
            raise AislewiseError(
                "Database is not initialized",
                suggestions=["Call initialize() first"]
            )

    @property
    def engine(self) -> Engine:
        self._require()
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        self._require()
        return self._session_factory

    @property
    def entities(self):
        """The ``EntityStore`` bound to this database."""
        self._require()
        return self._entities

    def reconciler(self, categorizer=None):
        """Build a bulk import reconciler wired to this database."""
        from aislewise.services.import_service import BulkImportReconciler
        return BulkImportReconciler(
            self.entities,
            categorizer=categorizer,
            bus=self.bus,
            cache=self.cache
        )

    def reset(self, tables_to_persist: Optional[Iterable[str]] = None) -> None:
        """
        Delete all data except the listed tables, then restore the built-in
        quantity units and recreate a store.

        Runs in one transaction and notifies listeners once.

        Args:
            tables_to_persist: Tables to keep, ``TABLES_TO_PERSIST`` when None
        """
        from aislewise.services.store_service import ensure_store_exists

        keep = set(self.settings.TABLES_TO_PERSIST if tables_to_persist is None else tables_to_persist)
        cleared = []
        with TransactionManager(self.session_factory).transaction() as session:
            for table in reversed(Base.metadata.sorted_tables):
                if table.name in keep:
                    continue
                session.execute(delete(table))
                cleared.append(table.name)
            seed_quantity_units(session.connection())
            ensure_store_exists(session, self.settings.DEFAULT_STORE_NAME)
        self.logger.info("Database reset", cleared=cleared, kept=sorted(keep))
        self.bus.publish()

    def close(self) -> None:
        """Dispose of the engine; the database can be initialized again."""
        if self._engine is not None:
            self._engine.dispose()
            self.logger.info("Database closed", backend=self.backend.describe())
        self._engine = None
        self._session_factory = None
        self._entities = None
        self.cache.clear()

    def __enter__(self) -> 'Database':
        return self.initialize()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class DatabaseProvider:
    """Owns the application's database for its lifetime."""

    def __init__(self, settings: Optional[AislewiseSettings] = None, bus: Optional[ChangeBus] = None):
        self.settings = settings or get_settings()
        self.bus = bus
        self._database: Optional[Database] = None

    def get(self) -> Database:
        """Return the initialized database, creating it on first use."""
        if self._database is None:
            database = Database(get_backend(settings=self.settings), self.bus, self.settings)
            database.initialize()
            self._database = database
        return self._database

    def shutdown(self) -> None:
        if self._database is not None:
            self._database.close()
            self._database = None
