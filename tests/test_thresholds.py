"""Tests du classement par bande de confiance."""

import pytest

from demolink.config import Threshold
from demolink.matching.thresholds import ConfidenceBand, classify


@pytest.fixture
def threshold() -> Threshold:
    return Threshold(high=85, medium=60, low=30)


def test_bands(threshold: Threshold) -> None:
    assert classify(90, threshold) is ConfidenceBand.HIGH
    assert classify(85, threshold) is ConfidenceBand.HIGH
    assert classify(84.9, threshold) is ConfidenceBand.MEDIUM
    assert classify(60, threshold) is ConfidenceBand.MEDIUM
    assert classify(30, threshold) is ConfidenceBand.LOW
    assert classify(29.9, threshold) is ConfidenceBand.NONE


def test_out_of_range_clamped(threshold: Threshold) -> None:
    assert classify(150, threshold) is ConfidenceBand.HIGH
    assert classify(-10, Threshold(high=80, medium=50, low=0)) is ConfidenceBand.LOW


def test_nan_is_none(threshold: Threshold) -> None:
    assert classify(float("nan"), threshold) is ConfidenceBand.NONE
