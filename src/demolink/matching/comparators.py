"""Comparaison champ par champ : similarité entre 0 et 1."""

from __future__ import annotations

from rapidfuzz.distance import JaroWinkler

from demolink.normalize import (
    extract_date_components,
    format_date,
    norm_identifier,
    norm_phone,
    norm_sex,
    norm_text,
)
from demolink.records import SCORABLE_FIELDS, FieldKind, Identifier, Record

# En dessous, Jaro-Winkler ne distingue plus deux noms sans rapport.
FUZZY_SCORE_CUTOFF = 0.7


def calculate_advanced_date_similarity(date1: str | None, date2: str | None) -> int:
    """
    Similarité ordinale de deux dates, formats mélangés acceptés.

    Returns:
        100 date identique, 80 même année et mois, 50 même année,
        30 années distantes de 2 ans au plus, 0 sinon ou si une date est illisible.
    """
    if not date1 or not date2:
        return 0
    norm1 = format_date(date1)
    norm2 = format_date(date2)
    if norm1 is None or norm2 is None:
        return 0
    if norm1 == norm2:
        return 100

    c1 = extract_date_components(date1)
    c2 = extract_date_components(date2)
    if c1.year is None or c2.year is None:
        return 0
    if c1.year == c2.year and c1.month == c2.month:
        return 80
    if c1.year == c2.year:
        return 50
    if abs(c1.year - c2.year) <= 2:
        return 30
    return 0


def fuzzy_similarity(a: str, b: str) -> float:
    """Jaro-Winkler sur textes normalisés, coupé sous FUZZY_SCORE_CUTOFF."""
    s = norm_text(a, remove_diacritics=True)
    t = norm_text(b, remove_diacritics=True)
    if not s or not t:
        return 0.0
    if s == t:
        return 1.0
    # Paire ordonnée : le résultat ne dépend pas du sens de la comparaison.
    lo, hi = (s, t) if s <= t else (t, s)
    return float(JaroWinkler.normalized_similarity(lo, hi, score_cutoff=FUZZY_SCORE_CUTOFF))


def _norm_exact(name: str, value: str) -> str:
    if name == "sex":
        return norm_sex(value)
    if name == "phone_number":
        return norm_phone(value)
    return norm_text(value, remove_diacritics=True)


def _identifier_keys(identifiers: list[Identifier]) -> set[tuple[str, str]]:
    keys = {norm_identifier(i.type, i.value) for i in identifiers}
    return {k for k in keys if k[1]}


def compare_field(name: str, source: Record, candidate: Record, *, fuzzy_matching: bool = True) -> float | None:
    """
    Similarité d'un champ entre deux enregistrements.

    Returns:
        Score entre 0 et 1, ou None si le champ est vide d'un côté ou de
        l'autre (aucun signal : le champ ne compte ni pour ni contre).
    """
    kind = SCORABLE_FIELDS[name]

    if kind is FieldKind.IDENTIFIER:
        src_keys = _identifier_keys(source.identifiers)
        cand_keys = _identifier_keys(candidate.identifiers)
        if not src_keys or not cand_keys:
            return None
        return 1.0 if src_keys & cand_keys else 0.0

    src_val = source.value_of(name)
    cand_val = candidate.value_of(name)

    if kind is FieldKind.DATE:
        if not norm_text(src_val) or not norm_text(cand_val):
            return None
        return calculate_advanced_date_similarity(src_val, cand_val) / 100.0

    if kind is FieldKind.EXACT:
        s = _norm_exact(name, src_val)
        t = _norm_exact(name, cand_val)
        if not s or not t:
            return None
        return 1.0 if s == t else 0.0

    s = norm_text(src_val, remove_diacritics=True)
    t = norm_text(cand_val, remove_diacritics=True)
    if not s or not t:
        return None
    if not fuzzy_matching:
        return 1.0 if s == t else 0.0
    return fuzzy_similarity(s, t)


def is_unparseable(name: str, source: Record, candidate: Record) -> bool:
    """Vrai pour un champ date renseigné des deux côtés mais illisible d'au moins un côté."""
    if SCORABLE_FIELDS[name] is not FieldKind.DATE:
        return False
    src_val = source.value_of(name)
    cand_val = candidate.value_of(name)
    if not norm_text(src_val) or not norm_text(cand_val):
        return False
    return format_date(src_val) is None or format_date(cand_val) is None
