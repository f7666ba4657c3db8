"""Interest overlap scorer using Jaccard similarity."""

from __future__ import annotations

from collections.abc import Iterable


def interest_score(tags_a: Iterable[str] | None, tags_b: Iterable[str] | None) -> float:
    """Compute the Jaccard similarity of two interest-tag collections.

    Returns ``|A & B| / |A | B|``.  Two users with no interests at all
    score 0.0 rather than being undefined.
    """
    set_a = set(tags_a or ())
    set_b = set(tags_b or ())

    union = set_a | set_b
    if not union:
        return 0.0

    return len(set_a & set_b) / len(union)
