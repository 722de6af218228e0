"""Base service class with common functionality."""
from contextlib import contextmanager
from typing import TypeVar, Generic, Optional, List, Generator, Type
from datetime import datetime, UTC
from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from aislewise.errors import ConstraintViolation, NotFoundError
from aislewise.events.bus import ChangeBus
from aislewise.utils.logger import get_logger
from aislewise.db.session import TransactionManager

# Generic type for service results
T = TypeVar('T')
M = TypeVar('M')


class Result(BaseModel, Generic[T]):
    """Generic result type for service operations."""
    success: bool
    data: Optional[T] = None
    error: str = ""
    suggestions: List[str] = []
    metadata: dict = {}

    # Allow arbitrary types (like SQLAlchemy models)
    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def ok(cls, data: T, **metadata) -> 'Result[T]':
        """Create a successful result."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, suggestions: Optional[List[str]] = None) -> 'Result[T]':
        """Create a failed result."""
        return cls(success=False, error=error or "Unknown error", suggestions=suggestions or [])


class BaseService:
    """Base class for all services."""

    def __init__(self, session_factory: sessionmaker, bus: Optional[ChangeBus] = None):
        """
        Initialize the service.

        Args:
            session_factory: Factory for database sessions
            bus: Bus notified after every committed write
        """
        self.session_factory = session_factory
        self.bus = bus
        self.logger = get_logger(self.__class__.__name__)
        self.transactions = TransactionManager(session_factory)

    @contextmanager
    def _write(self) -> Generator[Session, None, None]:
        """
        Run a write in its own transaction and publish after commit.

        Yields:
            Session: Session bound to the transaction

        Raises:
            ConstraintViolation: If the database rejects the write
        """
        try:
            with self.transactions.transaction() as session:
                yield session
        except IntegrityError as e:
            self.logger.warning("Write rejected by database", error=str(e.orig))
            raise ConstraintViolation(
                f"Write rejected: {e.orig}",
                suggestions=["Check for duplicate names or missing parents"]
            ) from e
        self._publish()

    def _read(self):
        return self.transactions.read()

    def _publish(self) -> None:
        if self.bus is not None:
            self.bus.publish()

    def _log_action(
        self,
        action: str,
        status: str = "success",
        **kwargs
    ) -> None:
        """
        Log a service action.

        Args:
            action: Name of the action
            status: Status of the action
            **kwargs: Additional log data
        """
        self.logger.info(
            f"{action}: {status}",
            **kwargs
        )

    def _get_now(self) -> datetime:
        """Get current UTC datetime."""
        return datetime.now(UTC)

    def _get_live(self, session: Session, model: Type[M], entity_id: str, entity: str) -> M:
        """
        Load a row that is not soft deleted.

        Raises:
            NotFoundError: If the row is missing or soft deleted
        """
        row = session.get(model, entity_id) if entity_id is not None else None
        if row is None or row.deleted_at is not None:
            raise NotFoundError(entity, entity_id)
        return row

    def _validate_name(self, name: str, field: str = "name") -> str:
        """
        Validate a display name.

        Args:
            name: Name to validate
            field: Field name for the error message

        Returns:
            The trimmed name

        Raises:
            ConstraintViolation: If the name is blank
        """
        if not isinstance(name, str) or not name.strip():
            raise ConstraintViolation(
                f"{field} cannot be empty",
                suggestions=["Enter a name"]
            )
        return name.strip()
