"""Token-set similarity used to compare book titles and author lists.

Each word contributes itself plus its overlapping character bigrams, so
plurals, small typos and punctuation differences between a Kindle title and
a catalog title still share most tokens.
"""

from __future__ import annotations

from collections.abc import Set
import re

STOP_WORDS = frozenset(
    {
        "a", "an", "the", "of", "in", "on", "at", "to", "for", "and", "or",
        "with", "by", "from", "as", "is", "its", "it", "be", "was", "are",
    }
)
CONTAINMENT_DAMPING = 0.9

_APOSTROPHE_RE = re.compile("['\u2018\u2019]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str | None) -> frozenset[str]:
    """Return whole words plus character bigrams for comparison."""

    if not text:
        return frozenset()

    cleaned = _NON_ALNUM_RE.sub(" ", _APOSTROPHE_RE.sub("", text.lower()))
    words = [word for word in cleaned.split() if len(word) > 1 and word not in STOP_WORDS]

    tokens: set[str] = set()
    for word in words:
        tokens.add(word)
        tokens.update(word[index : index + 2] for index in range(len(word) - 1))
    return frozenset(tokens)


def dice_coefficient(left: Set[str], right: Set[str]) -> float:
    """Sørensen-Dice coefficient; two empty sets are identical."""

    if not left and not right:
        return 1.0
    if not left or not right:
        return 0.0
    return (2 * len(left & right)) / (len(left) + len(right))


def containment(left: Set[str], right: Set[str]) -> float:
    """Share of the smaller set found in the larger one, dampened."""

    smaller, larger = (left, right) if len(left) <= len(right) else (right, left)
    if not smaller:
        return 0.0
    return (len(smaller & larger) / len(smaller)) * CONTAINMENT_DAMPING


def title_similarity(left: Set[str], right: Set[str]) -> float:
    """Best of Dice and dampened containment (short title vs. subtitled title)."""

    return max(dice_coefficient(left, right), containment(left, right))


def score_title_match(query_title: str, result_title: str) -> float:
    """Score a lookup result title against the title that was searched for."""

    query_tokens = tokenize(query_title)
    result_tokens = tokenize(result_title)
    if not query_tokens and not result_tokens:
        return 1.0
    if not query_tokens or not result_tokens:
        return 0.0
    return title_similarity(query_tokens, result_tokens)
