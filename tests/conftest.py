"""Test configuration and fixtures for Aislewise."""
import pytest
from unittest.mock import Mock, AsyncMock

from aislewise.config.settings import AislewiseSettings
from aislewise.db.backends import MemoryBackend
from aislewise.db.database import Database
from aislewise.domain.types import Categorization
from aislewise.events.bus import ChangeBus


@pytest.fixture
def settings(tmp_path) -> AislewiseSettings:
    """Settings pointing at throwaway paths."""
    return AislewiseSettings(
        DB_BACKEND="memory",
        DB_PATH=tmp_path / "aislewise.db",
        LOG_FILE=None,
    )


@pytest.fixture
def bus() -> ChangeBus:
    return ChangeBus()


@pytest.fixture
def database(bus, settings):
    """A migrated in-memory database, closed after the test."""
    db = Database(MemoryBackend(), bus=bus, settings=settings)
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def entities(database):
    return database.entities


@pytest.fixture
def store(entities):
    """The default store created on initialization."""
    return entities.stores.ensure_default_store()


@pytest.fixture
def layout(entities, store):
    """A small layout: Produce (Fruit, Vegetables) and Dairy (Milk)."""
    produce = entities.layout.insert_aisle(store.id, "Produce")
    dairy = entities.layout.insert_aisle(store.id, "Dairy")
    fruit = entities.layout.insert_section(store.id, produce.id, "Fruit")
    vegetables = entities.layout.insert_section(store.id, produce.id, "Vegetables")
    milk = entities.layout.insert_section(store.id, dairy.id, "Milk")
    return {
        'produce': produce,
        'dairy': dairy,
        'fruit': fruit,
        'vegetables': vegetables,
        'milk': milk,
    }


@pytest.fixture
def shopping_list(entities, store):
    return entities.lists.get_or_create_active_list(store.id)


@pytest.fixture
def publish_counter(bus, database):
    """Counts change notifications published after initialization."""
    counter = Mock()
    bus.subscribe(counter)
    return counter


@pytest.fixture
def mock_categorizer():
    """Categorizer that leaves every item uncategorized."""
    mock = Mock()
    mock.categorize = AsyncMock(return_value=Categorization())
    return mock


@pytest.fixture
def mock_openai():
    """Mock OpenAI client."""
    mock = Mock()
    mock.chat.completions.create = AsyncMock()
    return mock
