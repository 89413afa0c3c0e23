from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from agencyops.services.utils import round_half_up

WEIGHTS: dict[str, float] = {
    "seo_score": 0.3,
    "brand_voice_score": 0.25,
    "uniqueness_score": 0.2,
    "humanness_score": 0.15,
    "completeness_score": 0.1,
}


def composite_score(scores: Mapping[str, Any]) -> int:
    return round_half_up(sum(float(scores.get(name) or 0) * weight for name, weight in WEIGHTS.items()))
