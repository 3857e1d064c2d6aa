"""Tests du score déterministe."""

from dataclasses import replace

import pytest

from demolink.config import MatchingConfig
from demolink.matching.scorers import deterministic_score, score_record_pair
from demolink.records import Record


def test_identical_records_score_100(amanuel: Record, amanuel_dup: Record, scenario_config: MatchingConfig) -> None:
    score, details, matched_on = score_record_pair(amanuel, amanuel_dup, scenario_config)
    assert score == 100.0
    assert set(details) == {"first_name", "last_name", "birth_date", "village"}
    assert matched_on == ["first_name", "last_name", "birth_date", "village"]


def test_missing_field_does_not_penalize(scenario_config: MatchingConfig) -> None:
    a = Record(first_name="Amanuel", last_name="Tesfaye")
    b = Record(first_name="Amanuel", last_name="Tesfaye", village="Adi Ha", mother_name="Lemlem")
    assert deterministic_score(a, b, scenario_config).score == 100.0


def test_no_common_fields_scores_zero(scenario_config: MatchingConfig) -> None:
    a = Record(first_name="Amanuel")
    b = Record(village="Adi Ha")
    result = deterministic_score(a, b, scenario_config)
    assert result.score == 0.0
    assert result.field_scores == {}
    assert result.matched_on == []


def test_unrelated_scores_below_low(amanuel: Record, unrelated: Record, scenario_config: MatchingConfig) -> None:
    assert deterministic_score(amanuel, unrelated, scenario_config).score < scenario_config.threshold.low


def test_weighted_average() -> None:
    config = MatchingConfig(field_weights={"first_name": 3, "birth_date": 1})
    a = Record(first_name="Amanuel", birth_date="2000-05-17")
    b = Record(first_name="Amanuel", birth_date="2000-11-02")
    # (3 * 1.0 + 1 * 0.5) / 4
    assert deterministic_score(a, b, config).score == pytest.approx(87.5)


def test_zero_weight_field_ignored() -> None:
    config = MatchingConfig(field_weights={"first_name": 0, "last_name": 10})
    a = Record(first_name="Amanuel", last_name="Tesfaye")
    b = Record(first_name="Selam", last_name="Tesfaye")
    result = deterministic_score(a, b, config)
    assert result.score == 100.0
    assert "first_name" not in result.field_scores


def test_symmetry(amanuel: Record, unrelated: Record, scenario_config: MatchingConfig) -> None:
    variants = [
        unrelated,
        replace(amanuel, id="x", first_name="Amanueal", birth_date="1990-03-15"),
        Record(id="y", first_name="Tesfaye", last_name="Amanuel", sex="M", village="Adi-Ha"),
    ]
    for other in variants:
        ab = deterministic_score(amanuel, other, scenario_config)
        ba = deterministic_score(other, amanuel, scenario_config)
        assert ab.score == ba.score
        assert ab.field_scores == ba.field_scores


def test_monotonicity() -> None:
    a = Record(first_name="Amanuel", last_name="Tesfaye")
    b = Record(first_name="Amanuel", last_name="Gebremedhin")
    base = MatchingConfig(field_weights={"first_name": 10, "last_name": 10})
    more_agree = MatchingConfig(field_weights={"first_name": 30, "last_name": 10})
    more_disagree = MatchingConfig(field_weights={"first_name": 10, "last_name": 30})

    s_base = deterministic_score(a, b, base).score
    assert deterministic_score(a, b, more_agree).score >= s_base
    assert deterministic_score(a, b, more_disagree).score <= s_base


def test_administrative_fields_do_not_change_score(amanuel: Record, amanuel_dup: Record) -> None:
    config = MatchingConfig()
    other = replace(amanuel_dup, first_name="Amanueal", cell_leader_first_name="Kahsay", cell_leader_last_name="Desta")
    baseline = replace(amanuel_dup, first_name="Amanueal")
    with_leader = deterministic_score(amanuel, other, config)
    without_leader = deterministic_score(amanuel, baseline, config)
    assert with_leader.score == without_leader.score
    assert not any(k.startswith("cell_leader") for k in with_leader.field_scores)
