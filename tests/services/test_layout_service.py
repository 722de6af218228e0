"""Tests for aisles and sections."""
import pytest

from aislewise.domain.types import ReorderUpdate, ScannedAisle, StoreScanResult
from aislewise.errors import ConstraintViolation, NotFoundError


def _orders(rows):
    return {row.name: row.sort_order for row in rows}


def test_new_aisles_append_to_end(entities, store):
    a = entities.layout.insert_aisle(store.id, "A")
    b = entities.layout.insert_aisle(store.id, "B")
    entities.layout.soft_delete_aisle(b.id)
    c = entities.layout.insert_aisle(store.id, "C")

    assert a.sort_order == 0
    assert c.sort_order == 1
    assert [x.name for x in entities.layout.list_aisles(store.id)] == ["A", "C"]


def test_insert_aisle_for_missing_store(entities):
    with pytest.raises(NotFoundError):
        entities.layout.insert_aisle("missing", "Produce")


def test_reorder_aisles(entities, store, publish_counter):
    """Test reordering [A, B, C] to [B, C, A]."""
    a = entities.layout.insert_aisle(store.id, "A")
    b = entities.layout.insert_aisle(store.id, "B")
    c = entities.layout.insert_aisle(store.id, "C")
    publish_counter.reset_mock()

    entities.layout.reorder_aisles([
        {'id': b.id, 'sort_order': 0},
        ReorderUpdate(id=c.id, sort_order=1),
        {'id': a.id, 'sort_order': 2},
    ])

    aisles = entities.layout.list_aisles(store.id)
    assert [x.name for x in aisles] == ["B", "C", "A"]
    assert _orders(aisles) == {"B": 0, "C": 1, "A": 2}
    publish_counter.assert_called_once_with()


def test_reorder_rolls_back_on_unknown_id(entities, store, publish_counter):
    """Test that a failure after the first write leaves no partial order."""
    a = entities.layout.insert_aisle(store.id, "A")
    b = entities.layout.insert_aisle(store.id, "B")
    publish_counter.reset_mock()

    with pytest.raises(NotFoundError):
        entities.layout.reorder_aisles([
            {'id': b.id, 'sort_order': 0},
            {'id': "missing", 'sort_order': 1},
            {'id': a.id, 'sort_order': 2},
        ])

    assert _orders(entities.layout.list_aisles(store.id)) == {"A": 0, "B": 1}
    publish_counter.assert_not_called()


def test_reorder_rejects_aisle_of_other_store(entities, store):
    other = entities.stores.insert_store("Other")
    a = entities.layout.insert_aisle(store.id, "A")
    b = entities.layout.insert_aisle(store.id, "B")
    foreign = entities.layout.insert_aisle(other.id, "X")

    with pytest.raises(ConstraintViolation):
        entities.layout.reorder_aisles([
            {'id': b.id, 'sort_order': 0},
            {'id': foreign.id, 'sort_order': 1},
            {'id': a.id, 'sort_order': 2},
        ])

    assert _orders(entities.layout.list_aisles(store.id)) == {"A": 0, "B": 1}


def test_reorder_rejects_deleted_aisle(entities, store):
    a = entities.layout.insert_aisle(store.id, "A")
    b = entities.layout.insert_aisle(store.id, "B")
    entities.layout.soft_delete_aisle(b.id)

    with pytest.raises(NotFoundError):
        entities.layout.reorder_aisles([
            {'id': a.id, 'sort_order': 1},
            {'id': b.id, 'sort_order': 0},
        ])

    assert entities.layout.get_aisle(a.id).sort_order == 0


def test_empty_reorder_is_noop(entities, publish_counter):
    assert entities.layout.reorder_aisles([]) == []
    assert entities.layout.reorder_sections([]) == []
    publish_counter.assert_not_called()


def test_sections_ordered_within_aisle(entities, store, layout):
    sections = entities.layout.list_sections(store.id, layout['produce'].id)

    assert [s.name for s in sections] == ["Fruit", "Vegetables"]
    assert [s.sort_order for s in sections] == [0, 1]
    assert layout['milk'].sort_order == 0


def test_reorder_sections(entities, store, layout):
    entities.layout.reorder_sections([
        {'id': layout['vegetables'].id, 'sort_order': 0},
        {'id': layout['fruit'].id, 'sort_order': 1},
    ])

    sections = entities.layout.list_sections(store.id, layout['produce'].id)
    assert [s.name for s in sections] == ["Vegetables", "Fruit"]


def test_reorder_sections_rejects_other_aisle(entities, layout):
    with pytest.raises(ConstraintViolation):
        entities.layout.reorder_sections([
            {'id': layout['fruit'].id, 'sort_order': 5},
            {'id': layout['milk'].id, 'sort_order': 6},
        ])

    assert entities.layout.get_section(layout['fruit'].id).sort_order == 0


def test_section_aisle_must_be_in_same_store(entities, store):
    other = entities.stores.insert_store("Other")
    foreign = entities.layout.insert_aisle(other.id, "X")

    with pytest.raises(ConstraintViolation):
        entities.layout.insert_section(store.id, foreign.id, "Shelf")


def test_move_section_to_other_aisle(entities, store, layout):
    """Test that moving a section carries its items along."""
    item = entities.items.insert_item(store.id, "Cheese", section_id=layout['fruit'].id)

    moved = entities.layout.update_section(layout['fruit'].id, aisle_id=layout['dairy'].id)

    assert moved.aisle_id == layout['dairy'].id
    assert moved.sort_order == 1
    assert entities.items.get_item(item.id).aisle_id == layout['dairy'].id


def test_soft_delete_aisle_cascades(entities, store, layout):
    """Test that deleting an aisle hides its sections and keeps items."""
    in_section = entities.items.insert_item(store.id, "Apples", section_id=layout['fruit'].id)
    in_aisle = entities.items.insert_item(store.id, "Herbs", aisle_id=layout['produce'].id)
    elsewhere = entities.items.insert_item(store.id, "Milk", section_id=layout['milk'].id)

    entities.layout.soft_delete_aisle(layout['produce'].id)

    assert entities.layout.list_sections(store.id, layout['produce'].id) == []
    with pytest.raises(NotFoundError):
        entities.layout.get_section(layout['fruit'].id)
    for item_id in (in_section.id, in_aisle.id):
        item = entities.items.get_item(item_id)
        assert item.aisle_id is None
        assert item.section_id is None
    assert entities.items.get_item(elsewhere.id).section_id == layout['milk'].id

    views = {v.name: v for v in entities.items.list_items_with_location(store.id)}
    assert views["Apples"].section_name is None
    assert views["Milk"].aisle_name == "Dairy"


def test_soft_delete_section_keeps_item_aisle(entities, store, layout):
    item = entities.items.insert_item(store.id, "Apples", section_id=layout['fruit'].id)

    entities.layout.soft_delete_section(layout['fruit'].id)

    reloaded = entities.items.get_item(item.id)
    assert reloaded.section_id is None
    assert reloaded.aisle_id == layout['produce'].id


def test_layout_tree(entities, store, layout):
    tree = entities.layout.get_layout_tree(store.id)

    assert [a.name for a in tree] == ["Produce", "Dairy"]
    assert [s.name for s in tree[0].sections] == ["Fruit", "Vegetables"]
    assert tree[1].find_section(layout['milk'].id).name == "Milk"


def test_import_layout_into_empty_store(entities, store, publish_counter):
    publish_counter.reset_mock()

    tree = entities.layout.import_layout(store.id, {'aisles': [
        {'name': "Produce", 'sections': ["Fruit", "Vegetables"]},
        {'name': "Bakery", 'sections': []},
        {'name': "Aisle 1", 'sections': ["Cereal"]},
    ]})

    assert [a.name for a in tree] == ["Produce", "Bakery", "Aisle 1"]
    assert [a.sort_order for a in tree] == [0, 1, 2]
    assert [s.name for s in tree[0].sections] == ["Fruit", "Vegetables"]
    assert [s.sort_order for s in tree[0].sections] == [0, 1]
    publish_counter.assert_called_once_with()


def test_import_layout_merges_existing(entities, store, layout):
    """Test that known aisles and sections are reused, new ones appended."""
    tree = entities.layout.import_layout(store.id, StoreScanResult(aisles=[
        ScannedAisle(name="produce", sections=["FRUIT", "Herbs"]),
        ScannedAisle(name="Frozen", sections=["Ice Cream"]),
    ]))

    assert [a.name for a in tree] == ["Produce", "Dairy", "Frozen"]
    assert tree[0].id == layout['produce'].id
    assert [s.name for s in tree[0].sections] == ["Fruit", "Vegetables", "Herbs"]
    assert [s.name for s in tree[2].sections] == ["Ice Cream"]


def test_import_layout_without_aisles(entities, store, publish_counter):
    publish_counter.reset_mock()

    with pytest.raises(ConstraintViolation):
        entities.layout.import_layout(store.id, {'aisles': []})

    assert entities.layout.list_aisles(store.id) == []
    publish_counter.assert_not_called()


def test_import_layout_for_missing_store(entities):
    with pytest.raises(NotFoundError):
        entities.layout.import_layout("no-such-store", {'aisles': [{'name': "Deli"}]})


def test_scanned_aisle_cleans_sections():
    aisle = ScannedAisle(name="  Dairy ", sections=[" Milk", "milk", "", "Cheese"])

    assert aisle.name == "Dairy"
    assert aisle.sections == ["Milk", "Cheese"]
    with pytest.raises(ValueError):
        ScannedAisle(name="   ")
