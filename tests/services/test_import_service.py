"""Tests for the bulk import reconciler."""
import asyncio
import pytest
from unittest.mock import Mock

from aislewise.domain.types import Categorization, ParsedShoppingItem
from aislewise.events.cache import ReadCache
from aislewise.services.import_service import (
    BulkImportReconciler, LIST_ITEMS_CACHE_KEY, validate_categorization
)


@pytest.fixture
def reconciler(database, mock_categorizer):
    return database.reconciler(mock_categorizer)


@pytest.mark.asyncio
async def test_same_name_reuses_catalog_item(entities, store, shopping_list, reconciler):
    """Test importing "Milk" then "milk" into an empty store."""
    result = await reconciler.import_items(store.id, shopping_list.id, [
        {'name': "Milk", 'quantity': 1},
        {'name': "milk", 'quantity': 2},
    ])

    assert result.success
    summary = result.data
    assert summary.success_count == 2
    assert summary.failure_count == 0
    assert len(summary.created_item_ids) == 1
    assert len(summary.created_list_item_ids) == 2

    [item] = entities.items.list_items(store.id)
    assert item.name == "Milk"
    rows = [entities.lists.get_list_item(i) for i in summary.created_list_item_ids]
    assert [r.store_item_id for r in rows] == [item.id, item.id]
    assert [r.qty for r in rows] == [1, 2]


@pytest.mark.asyncio
async def test_existing_item_keeps_location(entities, store, layout, shopping_list, reconciler, mock_categorizer):
    existing = entities.items.insert_item(store.id, "Apples", section_id=layout['fruit'].id)

    result = await reconciler.import_items(store.id, shopping_list.id, [{'name': "APPLE"}])

    assert result.data.created_item_ids == []
    row = entities.lists.get_list_item(result.data.created_list_item_ids[0])
    assert row.store_item_id == existing.id
    assert row.section_name_snap == "Fruit"
    assert row.qty == 1
    mock_categorizer.categorize.assert_not_called()


@pytest.mark.asyncio
async def test_new_item_sentence_cased_and_categorized(entities, store, layout, shopping_list, reconciler, mock_categorizer):
    mock_categorizer.categorize.return_value = Categorization(
        aisle_id=layout['dairy'].id,
        section_id=layout['milk'].id
    )

    result = await reconciler.import_items(store.id, shopping_list.id, [
        ParsedShoppingItem(name="oAT MILK", quantity=2, unit="l", notes="organic"),
    ])

    [item_id] = result.data.created_item_ids
    item = entities.items.get_item(item_id)
    assert item.name == "Oat milk"
    assert item.section_id == layout['milk'].id
    row = entities.lists.get_list_item(result.data.created_list_item_ids[0])
    assert row.unit_id == "liter"
    assert row.notes == "organic"
    assert row.aisle_name_snap == "Dairy"
    tree = mock_categorizer.categorize.call_args.args[1]
    assert [a.name for a in tree] == ["Produce", "Dairy"]


@pytest.mark.asyncio
async def test_categorization_failure_does_not_fail_item(entities, store, layout, shopping_list, reconciler, mock_categorizer):
    """Test that a throwing categorizer only skips categorization."""
    async def categorize(name, tree):
        if name == "Bread":
            raise RuntimeError("model unavailable")
        return Categorization(aisle_id=layout['produce'].id)

    mock_categorizer.categorize.side_effect = categorize

    result = await reconciler.import_items(store.id, shopping_list.id, [
        {'name': "Apples"},
        {'name': "Bread"},
        {'name': "Carrots"},
    ])

    assert result.data.success_count == 3
    assert result.data.failure_count == 0
    bread = entities.items.find_item_by_name(store.id, "bread")
    assert bread.aisle_id is None
    assert entities.items.find_item_by_name(store.id, "apple").aisle_id == layout['produce'].id


@pytest.mark.asyncio
async def test_unknown_ids_are_ignored(entities, store, layout, shopping_list, reconciler, mock_categorizer):
    mock_categorizer.categorize.return_value = Categorization(aisle_id="made-up", section_id="also-made-up")

    result = await reconciler.import_items(store.id, shopping_list.id, [{'name': "Tea"}])

    assert result.data.success_count == 1
    item = entities.items.get_item(result.data.created_item_ids[0])
    assert item.aisle_id is None
    assert item.section_id is None


@pytest.mark.asyncio
async def test_invalid_entries_counted_as_failures(entities, store, shopping_list, reconciler):
    result = await reconciler.import_items(store.id, shopping_list.id, [
        {'name': "Milk"},
        {'name': "   "},
        {'quantity': 2},
        {'name': "Eggs", 'quantity': -3},
    ])

    assert result.data.success_count == 1
    assert result.data.failure_count == 3


@pytest.mark.asyncio
async def test_write_failure_isolated_to_item(entities, store, shopping_list, mock_categorizer):
    """Test that an item failing at write time does not abort the batch."""
    reconciler = BulkImportReconciler(entities, mock_categorizer)
    original = entities.lists.add_item_by_name
    calls = []

    def flaky(list_id, name, **kwargs):
        calls.append(name)
        if len(calls) == 2:
            raise RuntimeError("disk full")
        return original(list_id, name, **kwargs)

    entities.lists.add_item_by_name = flaky
    try:
        result = await reconciler.import_items(store.id, shopping_list.id, [
            {'name': "Milk"}, {'name': "Bread"}, {'name': "Tea"},
        ])
    finally:
        entities.lists.add_item_by_name = original

    assert result.data.success_count == 2
    assert result.data.failure_count == 1
    assert len(result.data.created_list_item_ids) == 2


@pytest.mark.asyncio
async def test_categorization_runs_concurrently(entities, store, layout, shopping_list, reconciler, mock_categorizer):
    """Test that a slow categorization does not serialize the others."""
    in_flight = 0
    peak = 0

    async def categorize(name, tree):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return Categorization()

    mock_categorizer.categorize.side_effect = categorize

    await reconciler.import_items(store.id, shopping_list.id, [
        {'name': "Apples"}, {'name': "apple"}, {'name': "Bread"}, {'name': "Tea"},
    ])

    assert peak == 3
    assert mock_categorizer.categorize.await_count == 3


@pytest.mark.asyncio
async def test_single_notification_and_cache_invalidation(database, store, shopping_list, reconciler):
    listener = Mock()
    database.bus.subscribe(listener)
    loader = Mock(return_value=[])
    key = (LIST_ITEMS_CACHE_KEY, shopping_list.id)
    database.cache.get(key, loader)

    await reconciler.import_items(store.id, shopping_list.id, [
        {'name': "Milk"}, {'name': "Bread"},
    ])

    listener.assert_called_once_with()
    assert key not in database.cache


@pytest.mark.asyncio
async def test_import_without_categorizer(entities, store, layout, shopping_list, database):
    reconciler = BulkImportReconciler(entities, bus=database.bus)

    result = await reconciler.import_items(store.id, shopping_list.id, [{'name': "Tea"}])

    assert result.data.success_count == 1


def test_validate_categorization(layout, entities, store):
    tree = entities.layout.get_layout_tree(store.id)
    produce, fruit, milk = layout['produce'].id, layout['fruit'].id, layout['milk'].id

    assert validate_categorization(Categorization(aisle_id=produce, section_id=fruit), tree) == \
        Categorization(aisle_id=produce, section_id=fruit)
    assert validate_categorization(Categorization(aisle_id=produce, section_id=milk), tree) == \
        Categorization(aisle_id=produce)
    assert validate_categorization(Categorization(section_id=fruit), tree) == \
        Categorization(aisle_id=produce, section_id=fruit)
    assert validate_categorization({'aisle_id': 7}, tree) == Categorization()
    assert validate_categorization(None, tree) == Categorization()


@pytest.mark.asyncio
async def test_explicit_zero_quantity_is_kept(entities, store, shopping_list, reconciler):
    result = await reconciler.import_items(store.id, shopping_list.id, [
        {'name': "Salt", 'quantity': 0},
        {'name': "Pepper"},
    ])

    rows = [entities.lists.get_list_item(i) for i in result.data.created_list_item_ids]
    assert [r.qty for r in rows] == [0, 1]


@pytest.mark.asyncio
async def test_failing_listener_does_not_fail_import(entities, store, shopping_list, database, mock_categorizer):
    """Test that a listener raising at the batched notification is only logged."""
    listener = Mock(side_effect=RuntimeError("listener broke"))
    database.bus.subscribe(listener)
    cache = ReadCache()
    key = (LIST_ITEMS_CACHE_KEY, shopping_list.id)
    cache.get(key, Mock(return_value=[]))
    reconciler = BulkImportReconciler(entities, mock_categorizer, bus=database.bus, cache=cache)

    result = await reconciler.import_items(store.id, shopping_list.id, [
        {'name': "Milk"}, {'name': "Bread"},
    ])

    assert result.success
    assert result.data.success_count == 2
    listener.assert_called_once_with()
    assert key not in cache
    assert len(entities.items.list_items(store.id)) == 2


@pytest.mark.asyncio
async def test_failed_list_item_leaves_no_catalog_item(entities, store, shopping_list, reconciler, monkeypatch):
    """Test that the catalog insert is undone when the list item cannot be written."""
    monkeypatch.setattr(
        "aislewise.services.import_service.match_unit",
        lambda value, units: Mock(id="no-such-unit") if value else None
    )

    result = await reconciler.import_items(store.id, shopping_list.id, [
        {'name': "Milk", 'unit': "carton"},
        {'name': "Bread"},
    ])

    assert result.data.success_count == 1
    assert result.data.failure_count == 1
    assert [i.name for i in entities.items.list_items(store.id)] == ["Bread"]
    [item_id] = result.data.created_item_ids
    assert entities.items.get_item(item_id).name == "Bread"


@pytest.mark.asyncio
async def test_unknown_unit_goes_to_notes(entities, store, shopping_list, reconciler):
    result = await reconciler.import_items(store.id, shopping_list.id, [
        {'name': "Juice", 'quantity': 2, 'unit': "carton", 'notes': "no pulp"},
        {'name': "Beef", 'quantity': 2, 'unit': "lbs"},
    ])

    juice, beef = [entities.lists.get_list_item(i) for i in result.data.created_list_item_ids]
    assert juice.unit_id is None
    assert juice.notes == "carton; no pulp"
    assert beef.unit_id == "pound"
    assert beef.notes is None


@pytest.mark.asyncio
async def test_import_into_missing_list_fails(entities, store, reconciler, mock_categorizer):
    result = await reconciler.import_items(store.id, "no-such-list", [{'name': "Milk"}])

    assert not result.success
    assert "no-such-list" in result.error
    assert result.suggestions
    assert entities.items.list_items(store.id) == []
    mock_categorizer.categorize.assert_not_called()


@pytest.mark.asyncio
async def test_import_into_other_stores_list_fails(entities, store, reconciler):
    other = entities.stores.insert_store("Corner Shop")
    other_list = entities.lists.get_or_create_active_list(other.id)

    result = await reconciler.import_items(store.id, other_list.id, [{'name': "Milk"}])

    assert not result.success
    assert entities.items.list_items(store.id) == []
    assert entities.items.list_items(other.id) == []
