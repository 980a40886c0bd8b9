"""String similarity scores used for fuzzy offender matching."""

from __future__ import annotations

from enforcesync.domain.normalization import normalize_company_name

_WINKLER_PREFIX = 4
_WINKLER_SCALE = 0.1


def jaro(left: str, right: str) -> float:
    if left == right:
        return 1.0
    if not left or not right:
        return 0.0

    window = max(max(len(left), len(right)) // 2 - 1, 0)
    left_matched = [False] * len(left)
    right_matched = [False] * len(right)
    matches = 0
    for i, char in enumerate(left):
        start = max(0, i - window)
        stop = min(i + window + 1, len(right))
        for j in range(start, stop):
            if right_matched[j] or right[j] != char:
                continue
            left_matched[i] = right_matched[j] = True
            matches += 1
            break
    if matches == 0:
        return 0.0

    left_chars = [char for char, hit in zip(left, left_matched, strict=True) if hit]
    right_chars = [char for char, hit in zip(right, right_matched, strict=True) if hit]
    transpositions = sum(a != b for a, b in zip(left_chars, right_chars, strict=True)) / 2
    return (
        matches / len(left) + matches / len(right) + (matches - transpositions) / matches
    ) / 3


def jaro_winkler(left: str, right: str) -> float:
    """Jaro similarity boosted for a shared prefix of up to four characters."""

    score = jaro(left, right)
    prefix = 0
    for a, b in zip(left[:_WINKLER_PREFIX], right[:_WINKLER_PREFIX], strict=False):
        if a != b:
            break
        prefix += 1
    return score + prefix * _WINKLER_SCALE * (1 - score)


def name_similarity(left: str | None, right: str | None) -> float:
    """Jaro-Winkler score of two names after company-name normalization."""

    return jaro_winkler(normalize_company_name(left), normalize_company_name(right))
