from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from typing import Iterable


@lru_cache(maxsize=128)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def matches(pattern: str, text: str) -> bool:
    return bool(text) and compile_pattern(pattern).search(text) is not None


def contained_terms(terms: Iterable[str], text: str) -> list[str]:
    """Catalog terms that occur in text as case-insensitive substrings, in catalog order."""
    lowered = (text or "").lower()
    return [term for term in terms if term.lower() in lowered]


def in_range(value: int, bounds: tuple[int, int]) -> bool:
    low, high = bounds
    return low <= value <= high


def round_half_away_from_zero(value: float | Decimal) -> int:
    # Decimal's ROUND_HALF_UP rounds ties away from zero, unlike builtin round().
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def capped_points(awards: Iterable[tuple[bool, int]]) -> int:
    return min(100, sum(points for hit, points in awards if hit))


def ratio_score(count: int, target: int) -> int:
    if target <= 0:
        return 0
    return min(100, round_half_away_from_zero(Decimal(count) * 100 / Decimal(target)))
