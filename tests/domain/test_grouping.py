"""Tests for aisle/section grouping."""
from itertools import permutations

from aislewise.domain.grouping import GroupKeys, UNCATEGORIZED, flatten_groups, group_items


def _item(id, name, aisle_id=None, aisle_name=None, aisle_order=None,
          section_id=None, section_name=None, section_order=None):
    return {
        'id': id,
        'name': name,
        'aisle_id': aisle_id,
        'aisle_name': aisle_name,
        'aisle_sort_order': aisle_order,
        'section_id': section_id,
        'section_name': section_name,
        'section_sort_order': section_order,
    }


def test_uncategorized_first_regardless_of_input_order():
    """Test the grouping order does not depend on input order."""
    items = [
        _item("1", "Salt"),
        _item("2", "Apple", aisle_id="p", aisle_name="Produce", aisle_order=1),
        _item("3", "Milk", aisle_id="d", aisle_name="Dairy", aisle_order=0),
    ]

    for ordering in permutations(items):
        groups = group_items(list(ordering))
        assert [g.label for g in groups] == [UNCATEGORIZED, "Dairy", "Produce"]


def test_uncategorized_beats_negative_sort_order():
    groups = group_items([
        _item("1", "Bread", aisle_id="b", aisle_name="Bakery", aisle_order=-5),
        _item("2", "Salt"),
    ])

    assert groups[0].is_uncategorized
    assert groups[1].name == "Bakery"


def test_sort_order_ties_break_on_case_sensitive_name():
    groups = group_items([
        _item("1", "x", aisle_id="a1", aisle_name="bakery", aisle_order=0),
        _item("2", "y", aisle_id="a2", aisle_name="Produce", aisle_order=0),
        _item("3", "z", aisle_id="a3", aisle_name="Dairy", aisle_order=0),
    ])

    assert [g.name for g in groups] == ["Dairy", "Produce", "bakery"]


def test_sections_follow_the_same_rules():
    items = [
        _item("1", "Apple", "p", "Produce", 0, "f", "Fruit", 1),
        _item("2", "Carrot", "p", "Produce", 0, "v", "Vegetables", 0),
        _item("3", "Herbs", "p", "Produce", 0),
    ]

    [produce] = group_items(items)

    assert [s.label for s in produce.sections] == [UNCATEGORIZED, "Vegetables", "Fruit"]


def test_items_sorted_by_name_then_id():
    items = [
        _item("b", "Milk", "d", "Dairy", 0),
        _item("a", "Milk", "d", "Dairy", 0),
        _item("c", "Butter", "d", "Dairy", 0),
    ]

    assert [i['id'] for i in flatten_groups(group_items(items))] == ["c", "a", "b"]


def test_missing_name_labels_uncategorized():
    [group] = group_items([_item("1", "Thing", aisle_id="gone")])

    assert not group.is_uncategorized
    assert group.label == UNCATEGORIZED


def test_custom_keys():
    """Test grouping objects with differently named fields."""
    class Row:
        def __init__(self, title, where):
            self.title = title
            self.where = where

    keys = GroupKeys(
        aisle_id=lambda r: r.where,
        aisle_name=lambda r: r.where,
        aisle_sort_order=lambda r: None,
        section_id=lambda r: None,
        section_name=lambda r: None,
        section_sort_order=lambda r: None,
        item_name=lambda r: r.title,
        item_id=lambda r: r.title,
    )
    rows = [Row("Tea", "Drinks"), Row("Coffee", "Drinks"), Row("Soap", None)]

    groups = group_items(rows, keys)

    assert [g.label for g in groups] == [UNCATEGORIZED, "Drinks"]
    assert [r.title for r in groups[1].items] == ["Coffee", "Tea"]
