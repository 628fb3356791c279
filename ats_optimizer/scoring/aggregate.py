from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from .matching import round_half_away_from_zero


def composite_score(sub_scores: Mapping[str, int | None], weights: Mapping[str, float]) -> int:
    """Weighted sum of category scores, rounded half away from zero.

    Categories absent from ``sub_scores`` (or set to None) contribute 0.
    """
    total = Decimal(0)
    for category, weight in weights.items():
        score = sub_scores.get(category) or 0
        total += Decimal(str(weight)) * Decimal(score)
    return max(0, min(100, round_half_away_from_zero(total)))
