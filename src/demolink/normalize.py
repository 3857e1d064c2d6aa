"""Normalisation des valeurs de champ : texte, sexe, téléphone, identifiants, dates."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from datetime import date
from typing import Any

import pandas as pd

_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DAY_FIRST_RE = re.compile(r"^(\d{1,2})[./](\d{1,2})[./](\d{4})$")
_MONTH_FIRST_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

_SEX_ALIASES = {
    "m": "male",
    "male": "male",
    "man": "male",
    "f": "female",
    "female": "female",
    "woman": "female",
}


def _is_missing(s: Any) -> bool:
    return s is None or (isinstance(s, float) and (s != s or s == float("inf")))


def _remove_diacritics(s: str) -> str:
    """Retire les diacritiques (accents) d'une chaîne."""
    nfd = unicodedata.normalize("NFD", s)
    return "".join(c for c in nfd if unicodedata.category(c) != "Mn")


def norm_text(
    s: str | float | int | None,
    *,
    lower: bool = True,
    strip: bool = True,
    remove_diacritics: bool = False,
) -> str:
    """
    Normalise un texte : NFKC, espaces multiples → espace simple, casefold, strip.

    Args:
        s: Valeur à normaliser (convertie en str si numérique).
        lower: Replier la casse (casefold).
        strip: Supprimer espaces en début/fin.
        remove_diacritics: Supprimer les accents.

    Returns:
        Chaîne normalisée. La valeur d'origine n'est jamais modifiée.
    """
    if _is_missing(s):
        return ""
    text = str(s).strip() if strip else str(s)
    text = unicodedata.normalize("NFKC", text)
    text = re.sub(r"\s+", " ", text)
    if strip:
        text = text.strip()
    if lower:
        text = text.casefold()
    if remove_diacritics:
        text = _remove_diacritics(text)
    return text


def norm_sex(s: str | None) -> str:
    """Ramène les variantes courantes (M, Male, f...) à ``male`` / ``female``."""
    text = norm_text(s)
    return _SEX_ALIASES.get(text, text)


def norm_phone(s: str | int | None) -> str:
    """Ne conserve que les chiffres d'un numéro de téléphone."""
    if _is_missing(s):
        return ""
    return re.sub(r"\D", "", str(s))


def norm_identifier(id_type: str | None, value: str | None) -> tuple[str, str]:
    """Clé de comparaison d'un identifiant externe : type replié, valeur sans espaces."""
    return norm_text(id_type), re.sub(r"\s+", "", norm_text(value))


@dataclass(frozen=True)
class DateComponents:
    year: int | None = None
    month: int | None = None
    day: int | None = None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_date(raw: str | None) -> date | None:
    """
    Interprète une date saisie sous plusieurs formats.

    Ordre d'essai : ISO (YYYY-MM-DD), jour d'abord (DD.MM.YYYY ou DD/MM/YYYY,
    jour <= 31 et mois <= 12), mois d'abord (MM/DD/YYYY), puis analyse
    permissive par pandas. Ne lève jamais : retourne None si rien ne convient.
    """
    if _is_missing(raw):
        return None
    cleaned = str(raw).strip()
    if not cleaned:
        return None

    if _ISO_RE.match(cleaned):
        try:
            return date.fromisoformat(cleaned)
        except ValueError:
            pass

    m = _DAY_FIRST_RE.match(cleaned)
    if m:
        day, month, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
        if 1 <= day <= 31 and 1 <= month <= 12:
            parsed = _safe_date(year, month, day)
            if parsed is not None:
                return parsed

    m = _MONTH_FIRST_RE.match(cleaned)
    if m:
        month, day, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
        if 1 <= month <= 12 and 1 <= day <= 31:
            parsed = _safe_date(year, month, day)
            if parsed is not None:
                return parsed

    try:
        ts = pd.to_datetime(cleaned, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.date()


def format_date(raw: str | None) -> str | None:
    """Forme canonique YYYY-MM-DD, ou None si la date est illisible."""
    parsed = normalize_date(raw)
    return parsed.isoformat() if parsed is not None else None


def extract_date_components(raw: str | None) -> DateComponents:
    parsed = normalize_date(raw)
    if parsed is None:
        return DateComponents()
    return DateComponents(year=parsed.year, month=parsed.month, day=parsed.day)


def calculate_age(raw: str | None, reference: date | None = None) -> int | None:
    """Âge révolu à la date de référence (aujourd'hui par défaut)."""
    born = normalize_date(raw)
    if born is None:
        return None
    ref = reference or date.today()
    return ref.year - born.year - ((ref.month, ref.day) < (born.month, born.day))


def safe_str(val: Any) -> str:
    """Convertit une valeur en chaîne pour affichage/stockage."""
    if _is_missing(val):
        return ""
    return str(val)
