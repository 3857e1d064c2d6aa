"""Classement d'un score dans une bande de confiance."""

from __future__ import annotations

import math
from enum import Enum

from demolink.config import Threshold


class ConfidenceBand(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


def classify(score: float, threshold: Threshold) -> ConfidenceBand:
    """Bande de confiance d'un score, borné à [0, 100] au préalable. NaN donne NONE."""
    if math.isnan(score):
        return ConfidenceBand.NONE
    s = max(0.0, min(100.0, score))
    if s >= threshold.high:
        return ConfidenceBand.HIGH
    if s >= threshold.medium:
        return ConfidenceBand.MEDIUM
    if s >= threshold.low:
        return ConfidenceBand.LOW
    return ConfidenceBand.NONE
