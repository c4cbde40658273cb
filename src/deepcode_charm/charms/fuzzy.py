"""Edit-distance suggestions for unknown charm names."""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_MAX_DISTANCE = 2
DEFAULT_LIMIT = 3


def levenshtein_distance(a: str, b: str) -> int:
    """Number of single-character edits that turn ``a`` into ``b``."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


def suggest_similar(
    name: str,
    candidates: Iterable[str],
    max_distance: int = DEFAULT_MAX_DISTANCE,
    limit: int = DEFAULT_LIMIT,
) -> list[str]:
    """Suggest candidates close to ``name``.

    Comparison is case-insensitive. Results are ordered by distance; equal
    distances keep the order of ``candidates``.
    """
    needle = name.lower()
    scored = [
        (distance, candidate)
        for candidate in candidates
        if (distance := levenshtein_distance(needle, candidate.lower())) <= max_distance
    ]
    scored.sort(key=lambda item: item[0])
    return [candidate for _, candidate in scored[:limit]]
