"""Error taxonomy for the Aislewise data layer."""
from typing import Optional, List, Dict, Any


class AislewiseError(Exception):
    """Base class for Aislewise errors."""
    def __init__(
        self,
        message: str,
        suggestions: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.suggestions = suggestions or []
        self.metadata = metadata or {}
        super().__init__(message)


class SchemaError(AislewiseError):
    """A migration failed; the schema version was left unchanged."""
    pass


class NotFoundError(AislewiseError):
    """An operation referenced a missing or soft-deleted entity."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} '{entity_id}' not found",
            metadata={'entity': entity, 'id': entity_id}
        )


class ConstraintViolation(AislewiseError):
    """A write would break a data invariant."""
    pass


class ReconciliationItemError(AislewiseError):
    """A single bulk-import entry could not be reconciled."""

    def __init__(self, item_name: str, index: int, cause: BaseException):
        self.item_name = item_name
        self.index = index
        self.cause = cause
        super().__init__(
            f"Failed to import item #{index} '{item_name}': {cause}",
            metadata={'item_name': item_name, 'index': index}
        )


class BackendUnavailable(AislewiseError):
    """The selected storage backend cannot serve requests."""
    pass
