"""Food name normalization."""

import re

SMALL_WORDS = frozenset(
    {"and", "with", "of", "in", "on", "the", "&", "a", "an", "at", "for"}
)

_WHITESPACE = re.compile(r"\s+")


def normalize_food_name(raw: str | None, max_words: int = 6) -> str:
    """Turn a raw food name into a short title-cased label.

    Shouting input (all caps) is lower-cased first, whitespace runs collapse,
    parentheses are dropped and the result keeps at most ``max_words`` words.
    Small words stay lower-case unless they start the label.
    """
    if not raw:
        return ""
    value = raw.strip()
    if value == value.upper() and len(value) > 1:
        value = value.lower()
    value = _WHITESPACE.sub(" ", value.replace("(", "").replace(")", "")).strip()
    if not value:
        return ""

    words = value.split(" ")[:max_words]
    titled: list[str] = []
    for index, word in enumerate(words):
        lowered = word.lower()
        if index > 0 and lowered in SMALL_WORDS:
            titled.append(lowered)
        else:
            titled.append(lowered[:1].upper() + lowered[1:])
    return " ".join(titled)


def content_key(text: str) -> str:
    """Normalize free text for hashing so trivial edits hit the same cache entry."""
    return _WHITESPACE.sub(" ", text.strip().lower())
