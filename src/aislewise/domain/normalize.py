"""Item name normalization and matching."""
import re
from functools import lru_cache

import inflect

_engine = inflect.engine()

# Words ending in "s" that are not plurals
_UNCOUNTABLE = frozenset({
    "molasses", "news", "series", "species", "chassis", "scissors", "pliers",
    "tongs", "jeans", "clothes", "grits", "measles", "headquarters",
})
_SINGULAR_ENDING = re.compile(r"(ss|us|is)$")


def _is_plural(word: str) -> bool:
    return not (word in _UNCOUNTABLE or _SINGULAR_ENDING.search(word))


@lru_cache(maxsize=4096)
def _singularize(text: str) -> str:
    """Singularize the last word of ``text``; unchanged when already singular."""
    if not text:
        return text
    words = text.split(" ")
    last = words[-1]
    if last and _is_plural(last):
        words[-1] = _engine.singular_noun(last) or last
    return " ".join(words)


def normalize_item_name(name: str) -> str:
    """
    Build the matching key for an item name.

    The key is the trimmed, singularized, lowercased name with internal runs
    of whitespace collapsed. The steps repeat until the key stops changing,
    so normalizing a key returns the same key.

    Args:
        name: Raw item name

    Returns:
        The normalized key, or an empty string for blank input
    """
    if name is None:
        return ""
    current = " ".join(name.lower().split())
    seen = set()
    while current not in seen:
        seen.add(current)
        current = " ".join(_singularize(current).lower().split())
    return current


def to_sentence_case(text: str) -> str:
    """Trim and upper-case the first character, lower-casing the rest."""
    text = (text or "").strip()
    if not text:
        return ""
    return text[0].upper() + text[1:].lower()


def names_match(a: str, b: str) -> bool:
    """Whether two names refer to the same catalog item."""
    return normalize_item_name(a) == normalize_item_name(b)
