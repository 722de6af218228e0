"""Interfaces of the external collaborators used by the import pipeline."""
from typing import Dict, List, Optional, Protocol, Union, runtime_checkable

from aislewise.domain.types import AisleNode, Categorization, ParsedShoppingItem, StoreScanResult


@runtime_checkable
class Categorizer(Protocol):
    """Suggests where an item belongs in a store layout."""

    async def categorize(self, item_name: str, tree: List[AisleNode]) -> Categorization:
        """Return aisle and section ids from ``tree``; may raise."""
        ...


@runtime_checkable
class BulkParser(Protocol):
    """Turns free-form text or an image into item descriptions."""

    async def parse(self, source: Union[str, bytes]) -> List[ParsedShoppingItem]:
        ...


@runtime_checkable
class StoreScanner(Protocol):
    """Reads aisles and sections off a photo of a store directory."""

    async def scan(self, image: bytes) -> StoreScanResult:
        ...


@runtime_checkable
class SecretStore(Protocol):
    """Opaque key-value storage for credentials."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemorySecretStore:
    """Secret store kept in process memory."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)
