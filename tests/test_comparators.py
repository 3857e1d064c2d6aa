"""Tests de la comparaison champ par champ."""

import pytest

from demolink.matching.comparators import (
    calculate_advanced_date_similarity,
    compare_field,
    fuzzy_similarity,
    is_unparseable,
)
from demolink.records import Identifier, Record


@pytest.mark.parametrize(
    ("d1", "d2", "expected"),
    [
        ("2000-05-17", "2000-05-17", 100),
        ("2000-05-17", "2000-05-01", 80),
        ("2000-05-17", "2000-11-02", 50),
        ("2000-05-17", "2002-05-17", 30),
        ("2000-05-17", "2010-05-17", 0),
    ],
)
def test_date_ladder(d1: str, d2: str, expected: int) -> None:
    assert calculate_advanced_date_similarity(d1, d2) == expected


def test_date_similarity_mixed_formats() -> None:
    assert calculate_advanced_date_similarity("17/05/2000", "2000-05-17") == 100
    assert calculate_advanced_date_similarity("17.05.2000", "2000-05-02") == 80


def test_date_similarity_unparseable_is_zero() -> None:
    assert calculate_advanced_date_similarity("garbage", "2000-05-17") == 0
    assert calculate_advanced_date_similarity("", "2000-05-17") == 0
    assert calculate_advanced_date_similarity(None, None) == 0


def test_fuzzy_similarity() -> None:
    assert fuzzy_similarity("Amanuel", "amanuel") == 1.0
    assert fuzzy_similarity("Amanuel", "Amanueal") > 0.9
    # Sous le seuil de coupure : aucun crédit
    assert fuzzy_similarity("Amanuel", "Selam") == 0.0
    assert fuzzy_similarity("Mékéllé", "MEKELLE") == 1.0


def test_fuzzy_similarity_symmetric() -> None:
    assert fuzzy_similarity("Tesfaye", "Tesfay") == fuzzy_similarity("Tesfay", "Tesfaye")
    assert fuzzy_similarity("Gebremedhin", "Gebremeskel") == fuzzy_similarity("Gebremeskel", "Gebremedhin")


def test_compare_field_missing_returns_none() -> None:
    assert compare_field("first_name", Record(first_name="Amanuel"), Record()) is None
    assert compare_field("birth_date", Record(birth_date="2000-01-01"), Record(birth_date="  ")) is None


def test_compare_field_unparseable_date_is_zero() -> None:
    assert compare_field("birth_date", Record(birth_date="??"), Record(birth_date="2000-01-01")) == 0.0


def test_compare_field_exact_kinds() -> None:
    assert compare_field("sex", Record(sex="M"), Record(sex="male")) == 1.0
    assert compare_field("sex", Record(sex="F"), Record(sex="male")) == 0.0
    assert compare_field("phone_number", Record(phone_number="+255 712 345 678"), Record(phone_number="255712345678")) == 1.0


def test_compare_field_identifiers() -> None:
    a = Record(identifiers=[Identifier("NIDA", "123 45")])
    b = Record(identifiers=[Identifier("passport", "X1"), Identifier("nida", "12345")])
    c = Record(identifiers=[Identifier("nida", "99999")])
    assert compare_field("identifiers", a, b) == 1.0
    assert compare_field("identifiers", a, c) == 0.0
    assert compare_field("identifiers", a, Record()) is None


def test_compare_field_date_partial() -> None:
    assert compare_field("birth_date", Record(birth_date="2000-05-17"), Record(birth_date="2000-05-01")) == 0.8


def test_compare_field_without_fuzzy() -> None:
    a, b = Record(first_name="Amanuel"), Record(first_name="Amanueal")
    assert compare_field("first_name", a, b, fuzzy_matching=False) == 0.0
    assert compare_field("first_name", a, Record(first_name="AMANUEL"), fuzzy_matching=False) == 1.0


def test_compare_field_rejects_administrative() -> None:
    with pytest.raises(KeyError):
        compare_field("cell_leader_first_name", Record(), Record())


def test_is_unparseable() -> None:
    dated = Record(birth_date="2000-01-01")
    assert is_unparseable("birth_date", Record(birth_date="??"), dated)
    assert is_unparseable("birth_date", dated, Record(birth_date="31/31/2000"))
    assert not is_unparseable("birth_date", Record(birth_date="01/01/2000"), dated)
    assert not is_unparseable("birth_date", Record(), dated)
    assert not is_unparseable("first_name", Record(first_name="??"), Record(first_name="Abebe"))
