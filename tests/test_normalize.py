"""Tests de normalisation."""

from datetime import date

from demolink.normalize import (
    DateComponents,
    calculate_age,
    extract_date_components,
    format_date,
    norm_identifier,
    norm_phone,
    norm_sex,
    norm_text,
    normalize_date,
    safe_str,
)


def test_norm_text_basic() -> None:
    # Espaces multiples → espace simple, casefold, strip
    assert norm_text("  Amanuel   TESFAYE ") == "amanuel tesfaye"
    assert norm_text("  ABC  ", lower=False) == "ABC"
    assert norm_text("a\t\n  b") == "a b"


def test_norm_text_missing() -> None:
    assert norm_text(None) == ""
    assert norm_text(float("nan")) == ""
    assert norm_text("   ") == ""


def test_norm_text_remove_diacritics() -> None:
    assert norm_text("Mékéllé", remove_diacritics=True) == "mekelle"
    assert norm_text("ﬁ") == "fi"  # ligature NFKC


def test_norm_sex_aliases() -> None:
    assert norm_sex("M") == "male"
    assert norm_sex(" Female ") == "female"
    assert norm_sex("woman") == "female"
    assert norm_sex("other") == "other"
    assert norm_sex(None) == ""


def test_norm_phone_digits_only() -> None:
    assert norm_phone("+255 (0) 712-345") == "2550712345"
    assert norm_phone(None) == ""


def test_norm_identifier() -> None:
    assert norm_identifier(" NIDA ", "12 34 5") == ("nida", "12345")


def test_normalize_date_formats() -> None:
    assert normalize_date("1990-03-02") == date(1990, 3, 2)
    assert normalize_date("02.03.1990") == date(1990, 3, 2)
    # Jour d'abord quand c'est possible
    assert normalize_date("02/03/1990") == date(1990, 3, 2)
    # Mois d'abord quand le jour d'abord est impossible
    assert normalize_date("12/25/1990") == date(1990, 12, 25)


def test_normalize_date_unparseable() -> None:
    assert normalize_date("not a date") is None
    assert normalize_date("") is None
    assert normalize_date(None) is None


def test_format_date_canonical() -> None:
    assert format_date("2.3.1990") == "1990-03-02"
    assert format_date("inconnu") is None


def test_extract_date_components() -> None:
    assert extract_date_components("1990-03-02") == DateComponents(1990, 3, 2)
    assert extract_date_components("???") == DateComponents()


def test_calculate_age() -> None:
    assert calculate_age("1990-03-02", reference=date(2020, 3, 1)) == 29
    assert calculate_age("1990-03-02", reference=date(2020, 3, 2)) == 30
    assert calculate_age("xx") is None


def test_safe_str() -> None:
    assert safe_str(None) == ""
    assert safe_str(12) == "12"
