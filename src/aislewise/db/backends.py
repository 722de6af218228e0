"""Storage backends selected by configuration."""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from sqlalchemy.engine import Engine

from aislewise.config.settings import AislewiseSettings, get_settings
from aislewise.errors import BackendUnavailable
from .session import engine_url_for, make_engine


class DatabaseBackend(ABC):
    """Strategy producing the engine a database runs on."""

    kind: str = ""

    @abstractmethod
    def create_engine(self) -> Engine:
        """Create a configured engine for this backend."""

    def describe(self) -> str:
        return self.kind


class SqliteBackend(DatabaseBackend):
    """Durable SQLite file."""

    kind = "sqlite"

    def __init__(self, path: Union[str, Path], echo: bool = False):
        self.path = Path(path)
        self.echo = echo

    def create_engine(self) -> Engine:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return make_engine(engine_url_for(str(self.path)), echo=self.echo)

    def describe(self) -> str:
        return f"sqlite:{self.path}"


class MemoryBackend(DatabaseBackend):
    """SQLite in memory; data lives as long as the engine."""

    kind = "memory"

    def __init__(self, echo: bool = False):
        self.echo = echo

    def create_engine(self) -> Engine:
        return make_engine(engine_url_for(None), echo=self.echo, in_memory=True)


class RemoteBackend(DatabaseBackend):
    """Placeholder for a server-side store; not implemented."""

    kind = "remote"

    def create_engine(self) -> Engine:
        raise BackendUnavailable(
            "The remote backend is not available",
            suggestions=["Use the sqlite or memory backend"],
            metadata={'backend': self.kind}
        )


def get_backend(kind: Optional[str] = None, settings: Optional[AislewiseSettings] = None) -> DatabaseBackend:
    """
    Build the backend named by configuration.

    Args:
        kind: ``sqlite``, ``memory`` or ``remote``; ``DB_BACKEND`` when None
        settings: Settings to read, the cached settings when None

    Returns:
        The selected backend

    Raises:
        ValueError: If the kind is unknown
    """
    settings = settings or get_settings()
    kind = (kind or settings.DB_BACKEND).lower()
    if kind == "sqlite":
        return SqliteBackend(settings.DB_PATH, echo=settings.DB_ECHO)
    if kind == "memory":
        return MemoryBackend(echo=settings.DB_ECHO)
    if kind == "remote":
        return RemoteBackend()
    raise ValueError(f"Unknown database backend: {kind}")
