"""Database layer for Aislewise."""
from .session import TransactionManager, make_engine, make_session_factory
from .migrations import MIGRATIONS, Migration, run_migrations, get_schema_version
from .backends import DatabaseBackend, SqliteBackend, MemoryBackend, RemoteBackend, get_backend
from .database import Database, DatabaseProvider

__all__ = [
    'TransactionManager', 'make_engine', 'make_session_factory',
    'MIGRATIONS', 'Migration', 'run_migrations', 'get_schema_version',
    'DatabaseBackend', 'SqliteBackend', 'MemoryBackend', 'RemoteBackend', 'get_backend',
    'Database', 'DatabaseProvider',
]
