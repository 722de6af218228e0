"""Tests for item name normalization."""
import pytest

from aislewise.domain.normalize import names_match, normalize_item_name, to_sentence_case


@pytest.mark.parametrize("raw,expected", [
    ("Milk", "milk"),
    ("  Apples ", "apple"),
    ("apple", "apple"),
    ("Tomatoes", "tomato"),
    ("Green   Apples", "green apple"),
    ("", ""),
    ("   ", ""),
])
def test_normalize_item_name(raw, expected):
    assert normalize_item_name(raw) == expected


@pytest.mark.parametrize("raw", [
    "Eggs", "geese", "Cherries", "glasses", "boxes", "Leaves",
    "news", "Swiss cheese", "series", "  MIXED Nuts  ", "Ox", "ß",
])
def test_normalize_is_idempotent(raw):
    once = normalize_item_name(raw)
    assert normalize_item_name(once) == once


def test_normalize_collapses_plural_and_case():
    assert normalize_item_name("Apple") == normalize_item_name("apples")
    assert names_match("Bananas", "banana")
    assert not names_match("Milk", "Oat milk")


@pytest.mark.parametrize("raw,expected", [
    ("mILK", "Milk"),
    ("  orange juice ", "Orange juice"),
    ("", ""),
    ("a", "A"),
])
def test_to_sentence_case(raw, expected):
    assert to_sentence_case(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("Hummus", "hummus"),
    ("Swiss", "swiss"),
    ("Asparagus", "asparagus"),
    ("Molasses", "molasses"),
    ("Grass", "grass"),
    ("Bass", "bass"),
    ("Citrus", "citrus"),
    ("Watercress", "watercress"),
    ("Couscous", "couscous"),
    ("Hibiscus tea", "hibiscus tea"),
])
def test_singular_words_ending_in_s_are_kept(raw, expected):
    assert normalize_item_name(raw) == expected


def test_plural_of_word_ending_in_ss():
    assert normalize_item_name("Glasses") == "glass"
