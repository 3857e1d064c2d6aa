"""Fixtures partagées : petits pools d'enregistrements démographiques."""

import pytest

from demolink.config import MatchingConfig, Threshold
from demolink.records import Record


def person(rid: str, first: str, last: str, birth: str, village: str, **extra: str) -> Record:
    return Record(id=rid, first_name=first, last_name=last, birth_date=birth, village=village, **extra)


@pytest.fixture
def amanuel() -> Record:
    return person("src-1", "Amanuel", "Tesfaye", "1990-03-02", "Adi Ha")


@pytest.fixture
def amanuel_dup() -> Record:
    return person("reg-1", "Amanuel", "Tesfaye", "1990-03-02", "Adi Ha")


@pytest.fixture
def unrelated() -> Record:
    return person("reg-2", "Selam", "Gebremedhin", "1975-11-20", "Mekelle")


@pytest.fixture
def scenario_config() -> MatchingConfig:
    return MatchingConfig(threshold=Threshold(high=85, medium=60, low=30))


@pytest.fixture
def targets() -> list[Record]:
    return [
        person("t1", "Amanuel", "Tesfaye", "1990-03-02", "Adi Ha"),
        person("t2", "Selam", "Gebremedhin", "1975-11-20", "Mekelle"),
        person("t3", "Haile", "Berhane", "1982-06-10", "Axum"),
    ]


@pytest.fixture
def sources() -> list[Record]:
    return [
        person("s1", "Amanuel", "Tesfaye", "1990-03-02", "Adi Ha"),
        person("s2", "Selam", "Gebremedhin", "1975-11-20", "Mekelle"),
        person("s3", "Yohannes", "Kidane", "1960-01-01", "Gondar"),
    ]
