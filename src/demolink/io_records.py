"""Chargement des enregistrements et des configurations depuis le disque (JSON, CSV, Excel)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd

from demolink.batch import BatchMatchConfig
from demolink.config import ConfigFormatError, DemolinkError, MatchingConfig
from demolink.records import Record

SUPPORTED_RECORD_EXTENSIONS = (".json", ".csv", ".xlsx")


class RecordFileError(DemolinkError):
    """Fichier d'enregistrements absent, illisible ou mal formé."""


def _read_json(path: Path, error_cls: type[DemolinkError]) -> Any:
    if not path.exists():
        raise error_cls(f"Fichier introuvable: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise error_cls(f"JSON invalide dans {path}: {e}") from e
    except OSError as e:
        raise error_cls(f"Impossible de lire {path}: {e}") from e


def _frame_to_dicts(df: pd.DataFrame) -> list[dict[str, Any]]:
    # Cellules vides -> chaîne vide ; les colonnes doivent déjà porter les noms canoniques.
    df = df.astype(object).where(pd.notna(df), "")
    return [{str(k): v for k, v in row.items()} for row in df.to_dict(orient="records")]


def load_records(filepath: str | Path) -> list[Record]:
    """
    Charge des enregistrements aux clés canoniques.

    JSON : liste d'objets, ou objet ``{"records": [...]}``. CSV / xlsx : une
    ligne par enregistrement, colonnes aux noms canoniques (les identifiants
    structurés ne sont disponibles qu'en JSON). Tout est lu en texte.

    Raises:
        RecordFileError: Fichier absent, format non supporté ou contenu invalide.
    """
    path = Path(filepath)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_RECORD_EXTENSIONS:
        raise RecordFileError(f"Format non supporté: {suffix or '(aucune extension)'}. Attendus: {SUPPORTED_RECORD_EXTENSIONS}")

    if suffix == ".json":
        data = _read_json(path, RecordFileError)
        if isinstance(data, dict):
            data = data.get("records")
        if not isinstance(data, list):
            raise RecordFileError(f"{path}: une liste d'enregistrements est attendue")
        rows = data
    else:
        if not path.exists():
            raise RecordFileError(f"Fichier introuvable: {path}")
        try:
            if suffix == ".csv":
                df = pd.read_csv(path, dtype=str, keep_default_na=False)
            else:
                df = pd.read_excel(path, dtype=str, engine="openpyxl")
        except (OSError, ValueError) as e:
            raise RecordFileError(f"Impossible de lire {path}: {e}") from e
        rows = _frame_to_dicts(df)

    records = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise RecordFileError(f"{path}: l'enregistrement #{i} n'est pas un objet")
        records.append(Record.from_dict(row))
    return records


def load_matching_config(filepath: str | Path) -> MatchingConfig:
    """
    Charge une MatchingConfig depuis un fichier JSON.

    Raises:
        ConfigFormatError: Fichier absent ou JSON invalide.
        ConfigError: Configuration invalide.
    """
    path = Path(filepath)
    data = _read_json(path, ConfigFormatError)
    if not isinstance(data, dict):
        raise ConfigFormatError(f"Fichier de configuration invalide: {path} doit contenir un objet JSON")
    return MatchingConfig.from_dict(data)


def load_batch_config(filepath: str | Path) -> BatchMatchConfig:
    path = Path(filepath)
    data = _read_json(path, ConfigFormatError)
    if not isinstance(data, dict):
        raise ConfigFormatError(f"Fichier de configuration batch invalide: {path} doit contenir un objet JSON")
    return BatchMatchConfig.from_dict(data)
