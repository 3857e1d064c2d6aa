"""Tests de l'orchestrateur de matching."""

from dataclasses import replace

import pytest

from demolink.config import AlgorithmType, MatchingConfig, Threshold
from demolink.matching.linker import Linker, find_matches_for_record
from demolink.matching.schema import SearchStatus
from demolink.matching.thresholds import ConfidenceBand
from demolink.records import Record


def test_end_to_end_scenario(
    amanuel: Record, amanuel_dup: Record, unrelated: Record, scenario_config: MatchingConfig
) -> None:
    linker = Linker(scenario_config)
    matches = linker.find_matches(amanuel, [unrelated, amanuel_dup])

    assert len(matches) == 1
    assert matches[0].candidate_record_id == "reg-1"
    assert matches[0].score >= scenario_config.threshold.high
    assert linker.classify(matches[0]) is ConfidenceBand.HIGH
    assert linker.score_pair(amanuel, unrelated).score < scenario_config.threshold.low


def test_ranking_descending(amanuel: Record, amanuel_dup: Record, scenario_config: MatchingConfig) -> None:
    partial = replace(amanuel_dup, id="reg-3", birth_date="1990-07-15")
    matches = Linker(scenario_config).find_matches(amanuel, [partial, amanuel_dup])
    assert [m.candidate_record_id for m in matches] == ["reg-1", "reg-3"]
    assert matches[0].score > matches[1].score


def test_ties_keep_pool_order(amanuel: Record, amanuel_dup: Record, scenario_config: MatchingConfig) -> None:
    twin = replace(amanuel_dup, id="reg-9")
    matches = Linker(scenario_config).find_matches(amanuel, [twin, amanuel_dup])
    assert [m.candidate_record_id for m in matches] == ["reg-9", "reg-1"]
    assert [m.candidate_index for m in matches] == [0, 1]


def test_self_excluded(amanuel: Record, amanuel_dup: Record, scenario_config: MatchingConfig) -> None:
    same_id = replace(amanuel, village="Axum")
    matches = Linker(scenario_config).find_matches(amanuel, [amanuel, same_id, amanuel_dup])
    assert [m.candidate_record_id for m in matches] == ["reg-1"]


def test_min_score_and_limit(amanuel: Record, amanuel_dup: Record, scenario_config: MatchingConfig) -> None:
    pool = [replace(amanuel_dup, id=f"reg-{i}") for i in range(5)]
    linker = Linker(scenario_config)
    assert len(linker.find_matches(amanuel, pool, limit=2)) == 2
    assert linker.find_matches(amanuel, pool, min_score=100.1) == []


def test_algorithm_override(amanuel: Record, amanuel_dup: Record, scenario_config: MatchingConfig) -> None:
    matches = Linker(scenario_config).find_matches(amanuel, [amanuel_dup], algorithm=AlgorithmType.PROBABILISTIC)
    assert matches[0].algorithm is AlgorithmType.PROBABILISTIC
    assert matches[0].log_odds is not None


def test_search_pool_empty(amanuel: Record, scenario_config: MatchingConfig) -> None:
    linker = Linker(scenario_config)
    assert linker.search(amanuel, []).status is SearchStatus.POOL_EMPTY
    # Le pool ne contient que l'enregistrement lui-même
    assert linker.search(amanuel, [amanuel]).status is SearchStatus.POOL_EMPTY


def test_search_no_candidates(amanuel: Record, unrelated: Record, scenario_config: MatchingConfig) -> None:
    search = Linker(scenario_config).search(amanuel, [unrelated])
    assert search.status is SearchStatus.NO_CANDIDATES_ABOVE_THRESHOLD
    assert search.matches == []
    assert search.best is None
    assert search.fallback is None


def test_search_found(amanuel: Record, amanuel_dup: Record, unrelated: Record, scenario_config: MatchingConfig) -> None:
    search = Linker(scenario_config).search(amanuel, [unrelated, amanuel_dup])
    assert search.status is SearchStatus.FOUND
    assert search.best is not None and search.best.candidate_record_id == "reg-1"


@pytest.fixture
def prob_config() -> MatchingConfig:
    return MatchingConfig(threshold=Threshold(high=85, medium=60, low=30), algorithm_type=AlgorithmType.PROBABILISTIC)


def test_search_probabilistic_fallback(prob_config: MatchingConfig) -> None:
    # Prénom identique, même année de naissance, village différent :
    # déterministe (45 + 0.5 * 30) / 100 = 60, probabiliste ~28.
    source = Record(id="a", first_name="Amanuel", birth_date="1990-03-02", village="Adi Ha")
    cand = Record(id="b", first_name="Amanuel", birth_date="1990-07-15", village="Mekelle")

    search = Linker(prob_config).search(source, [cand])
    assert search.status is SearchStatus.NO_CANDIDATES_ABOVE_THRESHOLD
    assert search.algorithm is AlgorithmType.PROBABILISTIC
    assert search.fallback is not None
    assert search.fallback.status is SearchStatus.FOUND
    assert search.fallback.algorithm is AlgorithmType.DETERMINISTIC
    assert search.fallback.matches[0].score == pytest.approx(60.0)


def test_search_fallback_disabled(prob_config: MatchingConfig) -> None:
    source = Record(id="a", first_name="Amanuel", birth_date="1990-03-02", village="Adi Ha")
    cand = Record(id="b", first_name="Amanuel", birth_date="1990-07-15", village="Mekelle")
    assert Linker(prob_config).search(source, [cand], fallback=False).fallback is None


def test_find_matches_for_record(
    amanuel: Record, amanuel_dup: Record, unrelated: Record, scenario_config: MatchingConfig
) -> None:
    matches = find_matches_for_record(amanuel, [unrelated, amanuel_dup], scenario_config)
    assert [m.candidate_record_id for m in matches] == ["reg-1"]


def test_find_matches_same_id_exclusion(amanuel: Record) -> None:
    linker = Linker(MatchingConfig())
    twin = replace(amanuel)
    assert linker.find_matches(amanuel, [twin]) == []
    kept = linker.find_matches(amanuel, [amanuel, twin], exclude_same_id=False)
    assert [c.candidate_index for c in kept] == [1]
